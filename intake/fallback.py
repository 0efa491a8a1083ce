# intake/fallback.py
from __future__ import annotations

from typing import Callable, List, Mapping, Optional
from urllib.parse import quote

from intake import log_service

WHATSAPP_FALLBACK_NUMBER = "558293460460"
FALLBACK_DISCLAIMER = "⚠️ *DADOS ENVIADOS AUTOMATICAMENTE COMO FALLBACK* ⚠️"

Opener = Callable[[str], None]


def _line(label: str, value: Optional[str]) -> str:
    return f"{label} {value or ''}".rstrip() + "\n"


def render_whatsapp_message(data: Mapping[str, str]) -> str:
    """Resumo do formulário para o WhatsApp (texto puro, sem encoding)."""
    get = data.get
    parts: List[str] = ["📋 *DADOS DO "]

    if get("formType") == "lead":
        parts.append("LEAD*\n\n")
        parts.append(_line("👤 *Nome:*", get("nome")))
        parts.append(_line("📱 *Telefone:*", get("telefone")))
        if get("instagram"):
            parts.append(_line("📸 *Instagram:*", get("instagram")))
        parts.append(_line("🎯 *Interesse:*", get("interesse")))
        parts.append(_line("🚩 *Status:*", get("statusLead")))
        parts.append(_line("📅 *Data Lembrete:*", get("dataLembrete")))
        parts.append(_line("🔔 *Motivo Lembrete:*", get("motivoLembrete")))
        if get("observacoes"):
            parts.append(_line("📝 *Observações:*", get("observacoes")))
    else:
        parts.append("CLIENTE*\n\n")
        parts.append(_line("👤 *Nome:*", get("nome")))
        if get("cpf"):
            parts.append(_line("🆔 *CPF:*", get("cpf")))
        parts.append(_line("📱 *Telefone:*", get("telefone")))
        parts.append(_line("⚧ *Gênero:*", get("genero")))
        parts.append(_line("📦 *Produto:*", f"{get('linha') or ''} {get('tipo') or ''}".strip()))
        parts.append(_line("🎨 *Cor:*", get("cor")))
        parts.append(_line("📏 *Tamanho:*", get("tamanho")))
        parts.append(_line("💰 *Valor:*", get("valor")))
        parts.append(_line("💳 *Forma Pagamento:*", get("formaPagamento")))
        if get("localizacao"):
            parts.append(_line("📍 *Localização:*", get("localizacao")))
        parts.append(_line("🚚 *Frete:*", get("frete")))
        parts.append(_line("📅 *Data Pagamento:*", get("dataPagamento")))
        parts.append(_line("📅 *Data Entrega:*", get("dataEntrega")))
        parts.append(_line("💵 *Valor Total:*", get("valorTotal")))
        if get("observacao"):
            parts.append(_line("📝 *Observação:*", get("observacao")))

    parts.append("\n" + FALLBACK_DISCLAIMER)
    return "".join(parts)


def build_whatsapp_link(data: Mapping[str, str], number: str = WHATSAPP_FALLBACK_NUMBER) -> str:
    text = quote(render_whatsapp_message(data), safe="")
    return f"https://wa.me/{number}?text={text}"


class WhatsAppFallback:
    """
    Canal de fallback: monta o link wa.me e entrega a um `opener`
    (no navegador: nova aba; na API: o link volta para o cliente abrir).
    """

    def __init__(self, number: str = WHATSAPP_FALLBACK_NUMBER, opener: Optional[Opener] = None) -> None:
        self.number = number
        self.opener = opener

    def link_for(self, data: Mapping[str, str]) -> str:
        return build_whatsapp_link(data, self.number)

    def send(self, data: Mapping[str, str]) -> str:
        url = self.link_for(data)
        log_service.info("Abrindo WhatsApp como fallback", {"formType": data.get("formType")})
        if self.opener is not None:
            self.opener(url)
        return url

