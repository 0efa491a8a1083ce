# intake/log_service.py
from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from loguru import logger

# Níveis de log em ordem de prioridade
LOG_LEVELS: Dict[str, int] = {
    "debug": 0,
    "info": 1,
    "warn": 2,
    "error": 3,
}

# nome do nível no loguru
_LOGURU_LEVELS = {
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "error": "ERROR",
}

CORS_PATTERN = re.compile(r"cors|cross-origin|access-control", re.IGNORECASE)

_STATE: Dict[str, Any] = {
    "enabled": True,
    "level": "debug",
    "sink_id": None,
}


def _normalize_level(level: str) -> str:
    lvl = (level or "").strip().lower()
    if lvl == "warning":
        lvl = "warn"
    if lvl not in LOG_LEVELS:
        raise ValueError(f"Nível de log inválido: {level!r}")
    return lvl


def configure(enabled: bool = True, level: str = "debug", sink: Any = None) -> None:
    """
    Define o gate global (habilitado + nível mínimo).
    Com `sink`, instala um sink dedicado do loguru só para as entradas deste módulo
    (as entradas continuam indo também para os sinks já existentes do loguru).
    """
    _STATE["enabled"] = bool(enabled)
    _STATE["level"] = _normalize_level(level)

    if _STATE["sink_id"] is not None:
        try:
            logger.remove(_STATE["sink_id"])
        except ValueError:
            pass
        _STATE["sink_id"] = None

    if sink is not None:
        _STATE["sink_id"] = logger.add(
            sink,
            level="DEBUG",
            format="{message}",
            filter=lambda record: record["extra"].get("log_service") is True,
        )


def is_enabled_for(level: str) -> bool:
    if not _STATE["enabled"]:
        return False
    return LOG_LEVELS[_normalize_level(level)] >= LOG_LEVELS[_STATE["level"]]


def _mentions_cors(message: str, data: Any) -> bool:
    if CORS_PATTERN.search(message or ""):
        return True
    if data is None:
        return False
    try:
        text = json.dumps(data, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        text = str(data)
    return bool(CORS_PATTERN.search(text))


def log(level: str, message: str, data: Any = None) -> Optional[str]:
    """
    Emite `[timestamp] [LEVEL] message` se o log estiver habilitado e o nível
    for >= ao mínimo configurado. Retorna a linha emitida (ou None).
    """
    lvl = _normalize_level(level)
    if not is_enabled_for(lvl):
        return None

    timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    line = f"[{timestamp}] [{lvl.upper()}] {message}"
    if data is not None:
        line += f" | {json.dumps(data, ensure_ascii=False, default=str)}"

    logger.bind(log_service=True).log(_LOGURU_LEVELS[lvl], line)

    if _mentions_cors(message, data) and "Possível problema de CORS" not in message:
        warn("⚠️ Possível problema de CORS detectado! Verificando rede...")
    return line


def debug(message: str, data: Any = None) -> Optional[str]:
    return log("debug", message, data)


def info(message: str, data: Any = None) -> Optional[str]:
    return log("info", message, data)


def warn(message: str, data: Any = None) -> Optional[str]:
    return log("warn", message, data)


def error(message: str, data: Any = None) -> Optional[str]:
    return log("error", message, data)


# ======================
# Monitor de HTTP
# ======================
class MonitoredTransport(httpx.AsyncBaseTransport):
    """
    Wrapper explícito de transporte httpx:
    - loga o início de cada requisição
    - loga status de falha (>= 400)
    - destaca falhas que parecem bloqueio cross-origin
    """

    def __init__(self, inner: Optional[httpx.AsyncBaseTransport] = None) -> None:
        # só fecha o transporte interno se foi criado aqui
        self._owns_inner = inner is None
        self._inner = inner or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        debug(f"🌐 Fetch iniciado: {request.method} {url}")
        try:
            response = await self._inner.handle_async_request(request)
        except Exception as e:
            if CORS_PATTERN.search(str(e)) or CORS_PATTERN.search(type(e).__name__):
                error(f"🚫 Erro de CORS detectado: {url}", {"error": str(e)})
                info("Tente usar um dos métodos alternativos de envio de dados.")
            else:
                error(f"❌ Fetch falhou para: {url}", {"error": f"{type(e).__name__}: {e}"})
            raise

        if response.status_code >= 400:
            warn(f"⚠️ Fetch retornou status: {response.status_code} para {url}")
        else:
            debug(f"✅ Fetch bem-sucedido: {url}")
        return response

    async def aclose(self) -> None:
        if self._owns_inner:
            await self._inner.aclose()
