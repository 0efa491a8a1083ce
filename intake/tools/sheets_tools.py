# intake/tools/sheets_tools.py
from __future__ import annotations

import asyncio
import itertools
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Set, Tuple

import httpx

from intake import log_service
from intake.log_service import MonitoredTransport

DEFAULT_TIMEOUT = 15.0
FRAME_TIMEOUT = 60.0

# origens de onde o Apps Script responde (após o redirect do /exec)
EXPECTED_ORIGINS = ("script.google.com", "script.googleusercontent.com")

# URL malformada: erro de configuração, não de rede
_URL_ERRORS = (httpx.InvalidURL, httpx.UnsupportedProtocol)


class SheetsError(Exception):
    """Erro de integração com o webhook do Google Sheets."""


class SheetsTransportError(SheetsError):
    """Falha antes de obter resposta lógica (rede, bloqueio cross-origin, 5xx). Pode ser repetida."""


class SheetsTimeoutError(SheetsTransportError):
    """Envio excedeu o tempo limite."""


class SheetsRejectedError(SheetsError):
    """O endpoint respondeu e recusou os dados. Não adianta repetir."""


class SheetsConfigError(SheetsError):
    """URL do webhook malformada; nenhuma requisição chegou a sair."""


def _raise_for_status(resp: httpx.Response) -> None:
    status = resp.status_code
    if status < 400:
        return
    reason = resp.reason_phrase or ""
    if status >= 500 or status == 429:
        raise SheetsTransportError(f"Erro HTTP: {status} - {reason}")
    raise SheetsRejectedError(f"Erro HTTP: {status} - {reason}")


def _transport_error(e: Exception) -> SheetsTransportError:
    if isinstance(e, httpx.TimeoutException):
        return SheetsTimeoutError(f"Tempo esgotado: {e}")
    return SheetsTransportError(f"Erro de rede: {type(e).__name__}: {e}")


def parse_result(data: Any) -> Tuple[bool, str]:
    """
    Lê o discriminador da resposta do Apps Script.
    Aceita {"result": "success"|"error"} (POST JSON) e {"success": bool} (POST de formulário).
    """
    if not isinstance(data, dict):
        return False, "Resposta do servidor não está no formato JSON esperado"
    ok = data.get("result") == "success" or data.get("success") is True
    message = data.get("message") or ("Dados enviados com sucesso!" if ok else "Erro ao enviar dados")
    return ok, str(message)


class JsonPostTransport:
    """POST direto com corpo JSON; a resposta JSON decide sucesso/erro."""

    name = "json"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.timeout = timeout
        self._transport = transport

    async def send(self, url: str, payload: Mapping[str, Any]) -> str:
        try:
            async with httpx.AsyncClient(
                transport=MonitoredTransport(self._transport),
                timeout=self.timeout,
                follow_redirects=True,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
            ) as client:
                resp = await client.post(url, content=json.dumps(payload, ensure_ascii=False).encode("utf-8"))
        except _URL_ERRORS as e:
            raise SheetsConfigError(f"URL do webhook inválida: {e}") from e
        except httpx.TransportError as e:
            raise _transport_error(e) from e

        log_service.debug(f"Response status: {resp.status_code}")
        _raise_for_status(resp)

        try:
            data = resp.json()
        except ValueError as e:
            raise SheetsRejectedError("Resposta do servidor não está no formato JSON esperado") from e

        ok, message = parse_result(data)
        if not ok:
            raise SheetsRejectedError(message)
        return message


class FormPostTransport:
    """
    POST de formulário (campo único `data` com o JSON) dentro de um "frame"
    transitório: cada envio abre seu próprio cliente, registrado em
    `_frames`, e o libera em qualquer saída (sucesso, erro ou timeout).
    O carregamento do frame conta como sucesso; se o Apps Script devolver
    uma mensagem legível de uma origem esperada dizendo que falhou, é recusa.
    """

    name = "form"

    def __init__(
        self,
        timeout: float = FRAME_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        expected_origins: Tuple[str, ...] = EXPECTED_ORIGINS,
    ) -> None:
        self.timeout = timeout
        self._transport = transport
        self.expected_origins = expected_origins
        self._frames: Set[str] = set()
        self._ids = itertools.count(1)

    @property
    def active_frames(self) -> int:
        return len(self._frames)

    @asynccontextmanager
    async def _frame(self) -> AsyncIterator[httpx.AsyncClient]:
        frame_id = f"hidden-iframe-{next(self._ids)}"
        client = httpx.AsyncClient(
            transport=MonitoredTransport(self._transport),
            follow_redirects=True,
            timeout=None,  # o limite é o timeout do frame
        )
        self._frames.add(frame_id)
        log_service.debug(f"Frame {frame_id} criado")
        try:
            yield client
        finally:
            self._frames.discard(frame_id)
            await client.aclose()
            log_service.debug(f"Frame {frame_id} removido")

    def _from_expected_origin(self, resp: httpx.Response) -> bool:
        host = resp.url.host or ""
        return any(host == o or host.endswith("." + o) for o in self.expected_origins)

    def _read_message(self, resp: httpx.Response) -> Optional[Dict[str, Any]]:
        if not self._from_expected_origin(resp):
            return None
        try:
            data = resp.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    async def _load(self, client: httpx.AsyncClient, url: str, payload: Mapping[str, Any]) -> httpx.Response:
        return await client.post(url, data={"data": json.dumps(payload, ensure_ascii=False)})

    async def send(self, url: str, payload: Mapping[str, Any]) -> str:
        async with self._frame() as client:
            try:
                resp = await asyncio.wait_for(self._load(client, url, payload), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise SheetsTimeoutError(f"Tempo limite de {self.timeout:g}s excedido no envio por formulário") from e
            except _URL_ERRORS as e:
                raise SheetsConfigError(f"URL do webhook inválida: {e}") from e
            except httpx.TransportError as e:
                raise _transport_error(e) from e

        _raise_for_status(resp)

        message = self._read_message(resp)
        if message is not None:
            ok, text = parse_result(message)
            if not ok:
                raise SheetsRejectedError(text)
            return text
        return "Dados enviados com sucesso!"


class AutoTransport:
    """Tenta o POST JSON; em erro de transporte (ex.: bloqueio), cai para o POST de formulário."""

    name = "auto"

    def __init__(self, primary: JsonPostTransport, secondary: FormPostTransport) -> None:
        self.primary = primary
        self.secondary = secondary

    async def send(self, url: str, payload: Mapping[str, Any]) -> str:
        try:
            return await self.primary.send(url, payload)
        except SheetsTransportError as e:
            log_service.warn(f"POST JSON falhou ({e}); tentando envio por formulário")
            return await self.secondary.send(url, payload)


def build_transport(
    strategy: str = "auto",
    timeout: float = DEFAULT_TIMEOUT,
    frame_timeout: float = FRAME_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
):
    strategy = (strategy or "auto").strip().lower()
    if strategy == "json":
        return JsonPostTransport(timeout=timeout, transport=transport)
    if strategy in ("form", "frame"):
        return FormPostTransport(timeout=frame_timeout, transport=transport)
    if strategy == "auto":
        return AutoTransport(
            JsonPostTransport(timeout=timeout, transport=transport),
            FormPostTransport(timeout=frame_timeout, transport=transport),
        )
    raise ValueError(f"Estratégia de transporte desconhecida: {strategy}")
