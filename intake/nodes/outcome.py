# intake/nodes/outcome.py
from __future__ import annotations

from typing import Any, Dict

from intake import log_service
from intake.fallback import WHATSAPP_FALLBACK_NUMBER, build_whatsapp_link


def confirm(state: Dict[str, Any]) -> Dict[str, Any]:
    """Sucesso: anexa o link para ver o registro na planilha (se houver)."""
    result = state["result"].model_copy()
    view_url = (state.get("view_urls") or {}).get(state["form_type"])
    if view_url:
        result.viewUrl = view_url
    log_service.info(f"Formulário de {state['form_type']} - Envio bem-sucedido")
    return {**state, "result": result}


def offer_fallback(state: Dict[str, Any]) -> Dict[str, Any]:
    """
    Falha: os dados do formulário são preservados e o link do WhatsApp
    sempre acompanha o resultado (enviado automaticamente ou oferecido).
    """
    result = state["result"].model_copy()
    if not result.fallbackUrl:
        fallback = state.get("fallback")
        number = fallback.number if fallback is not None else WHATSAPP_FALLBACK_NUMBER
        result.fallbackUrl = build_whatsapp_link(state["payload"], number)
        result.redirectHint = False
    log_service.warn(f"Formulário de {state['form_type']} - Falha no envio", {"errorMsg": result.message})
    return {**state, "result": result}
