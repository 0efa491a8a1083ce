# intake/validators.py
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from intake.formatters import format_display_date

FormType = Literal["cliente", "lead"]

CPF_REGEX = r"^\d{3}\.\d{3}\.\d{3}-\d{2}$"
PHONE_REGEX = r"^\(\d{2}\) \d{5}-\d{4}$"

PERSONALIZADO = "Personalizado"

# Mensagens por campo (o primeiro erro de cada campo é o que aparece no formulário)
FIELD_MESSAGES: Dict[str, str] = {
    "nome": "Nome deve ter pelo menos 3 caracteres",
    "cpf": "CPF inválido",
    "telefone": "Telefone inválido",
    "genero": "Gênero inválido",
    "linha": "Linha é obrigatória",
    "tipo": "Tipo é obrigatório",
    "cor": "Cor é obrigatória",
    "tamanho": "Tamanho é obrigatório",
    "valor": "Valor é obrigatório",
    "formaPagamento": "Forma de pagamento inválida",
    "frete": "Frete é obrigatório",
    "dataPagamento": "Data de pagamento é obrigatória",
    "dataEntrega": "Data de entrega é obrigatória",
    "valorTotal": "Valor total é obrigatório",
    "interesse": "Interesse é obrigatório",
    "statusLead": "Status do lead inválido",
    "dataLembrete": "Data de lembrete é obrigatória",
    "motivoLembrete": "Motivo do lembrete é obrigatório",
}


class FormValidationError(Exception):
    """Payload incompleto/inválido. `errors` = {campo: mensagem}."""

    def __init__(self, errors: Dict[str, str]) -> None:
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))


def _parse_form_date(value: Any) -> Any:
    """Aceita date/datetime, ISO (YYYY-MM-DD) ou texto dd/mm/yy | dd/mm/yyyy."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if re.fullmatch(r"\d{2}/\d{2}/\d{2}", text):
            return datetime.strptime(text, "%d/%m/%y").date()
        if re.fullmatch(r"\d{2}/\d{2}/\d{4}", text):
            return datetime.strptime(text, "%d/%m/%Y").date()
    return value


class _IntakeForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    form_type: FormType  # sobrescrito nas subclasses

    def to_payload(self) -> Dict[str, str]:
        raise NotImplementedError


class ClienteForm(_IntakeForm):
    """Cadastro de cliente / registro de venda."""

    form_type: Literal["cliente"] = Field(default="cliente", exclude=True)

    nome: str = Field(min_length=3)
    cpf: Optional[str] = None
    telefone: str = Field(pattern=PHONE_REGEX)
    genero: Literal["Masculino", "Feminino", "Outro"] = "Masculino"
    linha: str = Field(min_length=1)
    tipo: str = Field(min_length=1)
    cor: str = Field(min_length=1)
    tamanho: str = Field(min_length=1)
    valor: str = Field(min_length=1)
    formaPagamento: Literal["PIX", "Débito", "Crédito", "Dinheiro"] = "PIX"
    parcelamento: Optional[str] = ""
    jurosAplicado: Optional[str] = ""
    jurosPersonalizado: Optional[str] = ""
    cupom: Optional[str] = ""
    cupomPersonalizado: Optional[str] = ""
    localizacao: Optional[str] = ""
    frete: str = Field(min_length=1)
    dataPagamento: date
    dataEntrega: date
    valorTotal: str = Field(min_length=1)
    observacao: Optional[str] = ""

    @field_validator("cpf")
    @classmethod
    def cpf_shape(cls, v: Optional[str]) -> Optional[str]:
        # CPF é opcional; vazio conta como ausente
        if v is None or v == "":
            return None
        if not re.fullmatch(CPF_REGEX, v):
            raise ValueError(FIELD_MESSAGES["cpf"])
        return v

    @field_validator("dataPagamento", "dataEntrega", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return _parse_form_date(v)

    def to_payload(self) -> Dict[str, str]:
        cupom = self.cupom or ""
        if cupom == PERSONALIZADO:
            cupom = self.cupomPersonalizado or ""
        juros = self.jurosAplicado or ""
        if juros == PERSONALIZADO:
            juros = self.jurosPersonalizado or ""

        return {
            "nome": self.nome,
            "cpf": self.cpf or "",
            "telefone": self.telefone,
            "genero": self.genero,
            "linha": self.linha,
            "tipo": self.tipo,
            "cor": self.cor,
            "tamanho": self.tamanho,
            "valor": self.valor,
            "formaPagamento": self.formaPagamento,
            "parcelamento": self.parcelamento or "",
            "jurosAplicado": juros,
            "cupom": cupom,
            "localizacao": self.localizacao or "",
            "frete": self.frete,
            "dataPagamento": format_display_date(self.dataPagamento),
            "dataEntrega": format_display_date(self.dataEntrega),
            "valorTotal": self.valorTotal,
            "observacao": self.observacao or "",
            "formType": "cliente",
        }


class LeadForm(_IntakeForm):
    """Registro de lead."""

    form_type: Literal["lead"] = Field(default="lead", exclude=True)

    nome: str = Field(min_length=3)
    telefone: str = Field(pattern=PHONE_REGEX)
    instagram: Optional[str] = ""
    interesse: str = Field(min_length=1)
    statusLead: Literal["Novo", "Em negociação", "Qualificado", "Não qualificado"] = "Novo"
    dataLembrete: date
    motivoLembrete: str = Field(min_length=1)
    observacoes: Optional[str] = ""

    @field_validator("dataLembrete", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return _parse_form_date(v)

    def to_payload(self) -> Dict[str, str]:
        return {
            "nome": self.nome,
            "telefone": self.telefone,
            "instagram": self.instagram or "",
            "interesse": self.interesse,
            "statusLead": self.statusLead,
            "dataLembrete": format_display_date(self.dataLembrete),
            "motivoLembrete": self.motivoLembrete,
            "observacoes": self.observacoes or "",
            "formType": "lead",
        }


FORM_MODELS: Dict[str, Type[_IntakeForm]] = {
    "cliente": ClienteForm,
    "lead": LeadForm,
}


def _errors_by_field(exc: ValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__root__",)
        field = str(loc[0])
        if field in errors:
            continue
        errors[field] = FIELD_MESSAGES.get(field, err.get("msg", "Valor inválido"))
    return errors


def validate_form(form_type: str, data: Dict[str, Any]) -> Union[ClienteForm, LeadForm]:
    """
    Valida os dados do formulário antes de qualquer I/O.
    Levanta FormValidationError com a mensagem de cada campo inválido.
    """
    model = FORM_MODELS.get(form_type)
    if model is None:
        raise FormValidationError({"formType": f"Tipo de formulário desconhecido: {form_type}"})
    try:
        return model.model_validate(data or {})  # type: ignore[return-value]
    except ValidationError as e:
        raise FormValidationError(_errors_by_field(e)) from e
