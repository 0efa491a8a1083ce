# api/tests/test_sheets_tools.py
import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest
import respx

from intake.tools.sheets_tools import (
    AutoTransport,
    SheetsConfigError,
    FormPostTransport,
    JsonPostTransport,
    SheetsRejectedError,
    SheetsTimeoutError,
    SheetsTransportError,
    build_transport,
)

URL = "https://script.google.com/macros/s/abc123/exec"
PAYLOAD = {"nome": "Maria", "telefone": "(82) 93460-4601", "formType": "lead"}


def run(coro):
    return asyncio.run(coro)


@respx.mock
def test_json_post_success():
    route = respx.post(URL).mock(return_value=httpx.Response(200, json={"result": "success", "message": "Salvo!"}))
    out = run(JsonPostTransport(timeout=2.0).send(URL, PAYLOAD))
    assert out == "Salvo!"
    assert route.called
    sent = json.loads(route.calls.last.request.content)
    assert sent["formType"] == "lead"


@respx.mock
def test_json_post_logical_failure_raises_rejected():
    respx.post(URL).mock(return_value=httpx.Response(200, json={"result": "error", "message": "Planilha cheia"}))
    with pytest.raises(SheetsRejectedError, match="Planilha cheia"):
        run(JsonPostTransport().send(URL, PAYLOAD))


@respx.mock
def test_json_post_non_json_body_is_rejected():
    respx.post(URL).mock(return_value=httpx.Response(200, text="<html>login</html>"))
    with pytest.raises(SheetsRejectedError):
        run(JsonPostTransport().send(URL, PAYLOAD))


@respx.mock
def test_json_post_status_classification():
    route = respx.post(URL)
    route.side_effect = [httpx.Response(404), httpx.Response(503)]
    with pytest.raises(SheetsRejectedError):
        run(JsonPostTransport().send(URL, PAYLOAD))
    with pytest.raises(SheetsTransportError):
        run(JsonPostTransport().send(URL, PAYLOAD))


@respx.mock
def test_json_post_network_errors_are_transport_class():
    route = respx.post(URL)
    route.side_effect = [httpx.ConnectError("unreachable"), httpx.ReadTimeout("timeout")]
    with pytest.raises(SheetsTransportError):
        run(JsonPostTransport().send(URL, PAYLOAD))
    with pytest.raises(SheetsTimeoutError):
        run(JsonPostTransport().send(URL, PAYLOAD))


@respx.mock
def test_form_post_sends_single_data_field_and_cleans_up():
    route = respx.post(URL).mock(return_value=httpx.Response(200, json={"success": True, "message": "Dados salvos"}))
    transport = FormPostTransport(timeout=2.0)

    out = run(transport.send(URL, PAYLOAD))

    assert out == "Dados salvos"
    assert transport.active_frames == 0
    body = parse_qs(route.calls.last.request.content.decode())
    assert list(body) == ["data"]
    assert json.loads(body["data"][0]) == PAYLOAD


@respx.mock
def test_form_post_failure_message_from_expected_origin():
    respx.post(URL).mock(return_value=httpx.Response(200, json={"success": False, "message": "Nenhum dado recebido."}))
    transport = FormPostTransport()
    with pytest.raises(SheetsRejectedError, match="Nenhum dado recebido"):
        run(transport.send(URL, PAYLOAD))
    assert transport.active_frames == 0


def test_form_post_load_without_readable_message_counts_as_success():
    other = "https://hooks.example.com/exec"
    inner = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>ok</html>"))
    transport = FormPostTransport(transport=inner)
    assert run(transport.send(other, PAYLOAD)) == "Dados enviados com sucesso!"
    assert transport.active_frames == 0


def test_form_post_timeout_cleans_up_every_frame():
    async def slow(request):
        await asyncio.sleep(5)
        return httpx.Response(200)

    transport = FormPostTransport(timeout=0.05, transport=httpx.MockTransport(slow))

    async def go():
        for _ in range(3):
            with pytest.raises(SheetsTimeoutError):
                await transport.send(URL, PAYLOAD)
            assert transport.active_frames == 0

    run(go())
    assert transport.active_frames == 0


@respx.mock
def test_auto_transport_falls_back_to_form_on_transport_error():
    route = respx.post(URL)
    route.side_effect = [
        httpx.ConnectError("blocked by CORS policy"),
        httpx.Response(200, json={"success": True, "message": "Dados salvos"}),
    ]
    transport = build_transport("auto", timeout=2.0, frame_timeout=2.0)
    assert isinstance(transport, AutoTransport)
    assert run(transport.send(URL, PAYLOAD)) == "Dados salvos"
    assert route.call_count == 2
    assert "data=" in route.calls.last.request.content.decode()


@respx.mock
def test_auto_transport_does_not_mask_rejection():
    route = respx.post(URL).mock(return_value=httpx.Response(200, json={"result": "error", "message": "recusado"}))
    with pytest.raises(SheetsRejectedError):
        run(build_transport("auto").send(URL, PAYLOAD))
    assert route.call_count == 1


def test_build_transport_unknown_strategy():
    with pytest.raises(ValueError):
        build_transport("carrier-pigeon")


@pytest.mark.parametrize("strategy", ["json", "form"])
def test_malformed_url_raises_configuration_error(strategy):
    transport = build_transport(strategy, timeout=2.0, frame_timeout=2.0)
    with pytest.raises(SheetsConfigError):
        run(transport.send("https://script.google.com:abc/macros/s/x/exec", PAYLOAD))
    if strategy == "form":
        assert transport.active_frames == 0


def test_shared_injected_transport_survives_client_close():
    class ClosingTransport(httpx.AsyncBaseTransport):
        closed = False

        async def handle_async_request(self, request):
            if self.closed:
                raise RuntimeError("transporte já fechado")
            return httpx.Response(200, json={"result": "success", "message": "ok"})

        async def aclose(self):
            self.closed = True

    inner = ClosingTransport()
    transport = build_transport("json", transport=inner)

    assert run(transport.send(URL, PAYLOAD)) == "ok"
    assert run(transport.send(URL, PAYLOAD)) == "ok"
    assert inner.closed is False
