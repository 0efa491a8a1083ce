# intake/graph.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, TypedDict

from langgraph.graph import END, StateGraph

from intake.fallback import WhatsAppFallback
from intake.nodes.outcome import confirm, offer_fallback
from intake.nodes.payload_builder import payload_builder
from intake.nodes.submitter import route_after_submit, submitter
from intake.submission import SubmissionConfig, SubmissionResult, Transport


class State(TypedDict, total=False):
    form: Any
    form_type: str
    payload: Dict[str, str]
    config: SubmissionConfig
    transport: Any
    fallback: Optional[WhatsAppFallback]
    sleep: Any
    view_urls: Dict[str, str]
    result: SubmissionResult


def build_graph():
    graph = StateGraph(State)

    graph.add_node("payload_builder", payload_builder)
    graph.add_node("submitter", submitter)
    graph.add_node("confirm", confirm)
    graph.add_node("offer_fallback", offer_fallback)

    graph.set_entry_point("payload_builder")
    graph.add_edge("payload_builder", "submitter")
    graph.add_conditional_edges(
        "submitter",
        route_after_submit,
        {"confirm": "confirm", "offer_fallback": "offer_fallback"},
    )
    graph.add_edge("confirm", END)
    graph.add_edge("offer_fallback", END)

    return graph.compile()


compiled = build_graph()


async def run_intake(
    form: Any,
    config: SubmissionConfig,
    transport: Transport,
    fallback: Optional[WhatsAppFallback] = None,
    view_urls: Optional[Dict[str, str]] = None,
    sleep=asyncio.sleep,
) -> SubmissionResult:
    """
    Executa o fluxo: payload -> envio (com retries) -> confirmação ou fallback.
    """
    state_in: State = {
        "form": form,
        "config": config,
        "transport": transport,
        "fallback": fallback,
        "sleep": sleep,
        "view_urls": view_urls or {},
    }

    out: State = await compiled.ainvoke(state_in)
    return out["result"]
