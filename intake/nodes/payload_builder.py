# intake/nodes/payload_builder.py
from typing import Any, Dict

from intake import log_service


def payload_builder(state: Dict[str, Any]) -> Dict[str, Any]:
    form = state["form"]
    payload = form.to_payload()
    log_service.debug(f"Formulário de {payload['formType']} - Dados formatados para envio", payload)
    return {
        **state,
        "form_type": payload["formType"],
        "payload": payload,
    }
