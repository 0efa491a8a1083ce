# api/tests/test_log_service.py
import asyncio

import httpx
import pytest

from intake import log_service
from intake.log_service import MonitoredTransport


@pytest.fixture
def lines():
    captured = []
    log_service.configure(enabled=True, level="debug", sink=lambda m: captured.append(str(m)))
    yield captured
    log_service.configure(enabled=True, level="debug")


def test_entries_are_timestamped_and_tagged(lines):
    out = log_service.info("Página carregada")
    assert out is not None
    assert out.startswith("[")
    assert "] [INFO] Página carregada" in out
    assert any("[INFO] Página carregada" in line for line in lines)


def test_level_gate_is_a_total_order(lines):
    log_service.configure(enabled=True, level="warn", sink=lambda m: lines.append(str(m)))
    assert log_service.debug("d") is None
    assert log_service.info("i") is None
    assert log_service.warn("w") is not None
    assert log_service.error("e") is not None


def test_disabled_logging_emits_nothing(lines):
    log_service.configure(enabled=False, level="debug", sink=lambda m: lines.append(str(m)))
    assert log_service.error("nada") is None
    assert lines == []


def test_invalid_level_rejected():
    with pytest.raises(ValueError):
        log_service.log("verbose", "x")


def test_cors_mention_adds_warning(lines):
    log_service.info("Resposta", {"error": "blocked by CORS policy"})
    assert any("Possível problema de CORS" in line for line in lines)


def test_monitor_logs_start_and_failed_status(lines):
    inner = httpx.MockTransport(lambda request: httpx.Response(500))

    async def go():
        async with httpx.AsyncClient(transport=MonitoredTransport(inner)) as client:
            return await client.get("https://script.google.com/macros/s/x/exec")

    resp = asyncio.run(go())
    assert resp.status_code == 500
    assert any("Fetch iniciado" in line for line in lines)
    assert any("Fetch retornou status: 500" in line for line in lines)


def test_monitor_flags_cross_origin_failures(lines):
    def handler(request):
        raise httpx.ConnectError("Request blocked by CORS policy", request=request)

    async def go():
        async with httpx.AsyncClient(transport=MonitoredTransport(httpx.MockTransport(handler))) as client:
            await client.get("https://script.google.com/macros/s/x/exec")

    with pytest.raises(httpx.ConnectError):
        asyncio.run(go())
    assert any("Erro de CORS detectado" in line for line in lines)


def test_monitor_plain_network_failure(lines):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def go():
        async with httpx.AsyncClient(transport=MonitoredTransport(httpx.MockTransport(handler))) as client:
            await client.get("https://script.google.com/macros/s/x/exec")

    with pytest.raises(httpx.ConnectError):
        asyncio.run(go())
    assert any("Fetch falhou para" in line for line in lines)
    assert not any("Erro de CORS detectado" in line for line in lines)


def test_monitor_does_not_close_injected_transport(lines):
    class Recording(httpx.AsyncBaseTransport):
        closed = False

        async def handle_async_request(self, request):
            return httpx.Response(200)

        async def aclose(self):
            self.closed = True

    inner = Recording()

    async def go():
        async with httpx.AsyncClient(transport=MonitoredTransport(inner)) as client:
            await client.get("https://script.google.com/macros/s/x/exec")

    asyncio.run(go())
    assert inner.closed is False
