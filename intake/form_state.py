# intake/form_state.py
from __future__ import annotations

from typing import Callable, Dict, FrozenSet, Optional

from intake import log_service
from intake.formatters import format_cpf, format_currency, format_phone
from intake.totals import PricingInputs, compute_total
from intake.validators import PERSONALIZADO

Formatter = Callable[[str], str]

CLIENTE_DEFAULTS: Dict[str, str] = {
    "nome": "",
    "cpf": "",
    "telefone": "",
    "genero": "Masculino",
    "linha": "",
    "tipo": "",
    "cor": "",
    "tamanho": "",
    "valor": "",
    "formaPagamento": "PIX",
    "parcelamento": "",
    "jurosAplicado": "",
    "jurosPersonalizado": "",
    "cupom": "",
    "cupomPersonalizado": "",
    "localizacao": "",
    "frete": "15,00",
    "dataPagamento": "",
    "dataEntrega": "",
    "valorTotal": "R$ 15,00",
    "observacao": "",
}

LEAD_DEFAULTS: Dict[str, str] = {
    "nome": "",
    "telefone": "",
    "instagram": "",
    "interesse": "",
    "statusLead": "Novo",
    "dataLembrete": "",
    "motivoLembrete": "",
    "observacoes": "",
}


class FormState:
    """
    Valores de um formulário em edição + despachante de mudanças:
    on_change(campo, valor_bruto) aplica o formatter do campo e,
    se o campo for entrada do total, recalcula o total.
    """

    defaults: Dict[str, str] = {}
    formatters: Dict[str, Formatter] = {}
    total_inputs: FrozenSet[str] = frozenset()
    read_only: FrozenSet[str] = frozenset()

    def __init__(self, values: Optional[Dict[str, str]] = None) -> None:
        self.values: Dict[str, str] = dict(self.defaults)
        for field, raw in (values or {}).items():
            if field in self.read_only:
                continue
            self.values[field] = self._format(field, raw)
        if self.total_inputs:
            self.recompute_total()

    def _format(self, field: str, raw: Optional[str]) -> str:
        value = "" if raw is None else str(raw)
        fmt = self.formatters.get(field)
        return fmt(value) if fmt else value

    def on_change(self, field: str, raw: Optional[str]) -> Dict[str, str]:
        if field in self.read_only:
            log_service.warn(f"Campo somente leitura ignorado: {field}")
            return self.values
        self.values[field] = self._format(field, raw)
        self._after_change(field)
        if field in self.total_inputs:
            self.recompute_total()
        return self.values

    def _after_change(self, field: str) -> None:
        pass

    def recompute_total(self) -> None:
        pass

    def reset(self) -> None:
        self.values = dict(self.defaults)


class CustomerFormState(FormState):
    defaults = CLIENTE_DEFAULTS
    formatters = {
        "cpf": format_cpf,
        "telefone": format_phone,
        "valor": format_currency,
    }
    total_inputs = frozenset(
        {
            "valor",
            "frete",
            "cupom",
            "cupomPersonalizado",
            "formaPagamento",
            "parcelamento",
            "jurosAplicado",
            "jurosPersonalizado",
        }
    )
    read_only = frozenset({"valorTotal"})

    def _after_change(self, field: str) -> None:
        v = self.values
        # cupom/juros escolhidos na lista limpam o texto personalizado;
        # texto personalizado força a opção "Personalizado"
        if field == "cupom" and v["cupom"] != PERSONALIZADO:
            v["cupomPersonalizado"] = ""
        elif field == "cupomPersonalizado":
            v["cupom"] = PERSONALIZADO if v["cupomPersonalizado"] else ""
        elif field == "jurosAplicado" and v["jurosAplicado"] != PERSONALIZADO:
            v["jurosPersonalizado"] = ""
        elif field == "jurosPersonalizado":
            v["jurosAplicado"] = PERSONALIZADO if v["jurosPersonalizado"] else ""

    def pricing_inputs(self) -> PricingInputs:
        v = self.values
        return PricingInputs(
            valor=v.get("valor", ""),
            frete=v.get("frete", ""),
            cupom=v.get("cupom", ""),
            cupomPersonalizado=v.get("cupomPersonalizado", ""),
            parcelamento=v.get("parcelamento", ""),
            jurosAplicado=v.get("jurosAplicado", ""),
            jurosPersonalizado=v.get("jurosPersonalizado", ""),
        )

    def recompute_total(self) -> None:
        self.values["valorTotal"] = compute_total(self.pricing_inputs())

    def reset(self) -> None:
        super().reset()
        self.recompute_total()

    def installment_hint(self) -> str:
        """Texto exibido abaixo do total quando há parcelamento."""
        v = self.values
        plano = v.get("parcelamento", "")
        if not plano:
            return ""
        if "com juros" not in plano:
            return f"Valor será parcelado em {plano}"
        if v.get("jurosAplicado") == PERSONALIZADO:
            return f"Valor será parcelado em {plano} ({v.get('jurosPersonalizado', '')} de juros)"
        if v.get("jurosAplicado"):
            return f"Valor será parcelado em {plano} ({v['jurosAplicado']} de juros)"
        return f"Valor será parcelado em {plano} (3% de juros por parcela acima de 3x)"


class LeadFormState(FormState):
    defaults = LEAD_DEFAULTS
    formatters = {"telefone": format_phone}
