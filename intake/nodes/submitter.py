# intake/nodes/submitter.py
from __future__ import annotations

import asyncio
from typing import Any, Dict

from intake import log_service
from intake.submission import SubmissionPipeline


async def submitter(state: Dict[str, Any]) -> Dict[str, Any]:
    payload = state["payload"]
    log_service.info(
        f"Formulário de {state['form_type']} - Submissão iniciada",
        {"nome": payload.get("nome"), "telefone": payload.get("telefone")},
    )

    pipeline = SubmissionPipeline(
        state["config"],
        state["transport"],
        fallback=state.get("fallback"),
        sleep=state.get("sleep") or asyncio.sleep,
    )
    result = await pipeline.submit(payload)
    return {**state, "result": result}


def route_after_submit(state: Dict[str, Any]) -> str:
    return "confirm" if state["result"].success else "offer_fallback"
