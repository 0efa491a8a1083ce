# intake/submission.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Protocol

from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
    wait_incrementing,
)

from intake import log_service
from intake.config_store import EndpointConfig
from intake.fallback import WhatsAppFallback
from intake.tools.sheets_tools import (
    SheetsConfigError,
    SheetsError,
    SheetsRejectedError,
    SheetsTransportError,
)

MAX_RETRIES = 3
RETRY_DELAY = 1.0  # segundos

Sleep = Callable[[float], Awaitable[Any]]


class Transport(Protocol):
    name: str

    async def send(self, url: str, payload: Mapping[str, Any]) -> str: ...


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    FALLBACK_OFFERED = "fallback_offered"
    FALLBACK_SENT = "fallback_sent"


class SubmissionResult(BaseModel):
    success: bool
    message: str
    redirectHint: Optional[bool] = None
    state: SubmissionState = SubmissionState.IDLE
    attempts: int = 0
    fallbackUrl: Optional[str] = None
    viewUrl: Optional[str] = None


@dataclass
class SubmissionConfig:
    endpoint: EndpointConfig = field(default_factory=EndpointConfig)
    max_retries: int = MAX_RETRIES
    retry_delay: float = RETRY_DELAY
    backoff: str = "linear"  # "linear" (delay * tentativa) | "flat"
    auto_fallback: bool = False
    retry_on_rejection: bool = False


class SubmissionPipeline:
    """
    Entrega um payload validado ao webhook ou a um canal de fallback visível.
    Estados: idle -> submitting -> succeeded | failed [-> fallback_offered -> fallback_sent]
    """

    def __init__(
        self,
        config: SubmissionConfig,
        transport: Transport,
        fallback: Optional[WhatsAppFallback] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self.transport = transport
        self.fallback = fallback
        self.sleep = sleep
        self.state = SubmissionState.IDLE

    # ---------- política de retry ----------
    def _wait(self):
        delay = max(0.0, float(self.config.retry_delay))
        if self.config.backoff == "flat":
            return wait_fixed(delay)
        return wait_incrementing(start=delay, increment=delay)

    def _retry_predicate(self):
        predicate = retry_if_exception_type(SheetsTransportError)
        if self.config.retry_on_rejection:
            predicate = predicate | retry_if_exception_type(SheetsRejectedError)
        return predicate

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        log_service.warn(
            f"Tentativa {retry_state.attempt_number} falhou; nova tentativa em {wait:g}s",
            {"error": str(retry_state.outcome.exception()) if retry_state.outcome else None},
        )

    # ---------- fallback ----------
    def _fail(self, payload: Mapping[str, Any], message: str, attempts: int) -> SubmissionResult:
        self.state = SubmissionState.FAILED
        result = SubmissionResult(success=False, message=message, state=self.state, attempts=attempts)
        if self.fallback is None:
            return result

        if self.config.auto_fallback:
            log_service.info("Ativando fallback para WhatsApp")
            result.fallbackUrl = self.fallback.send(payload)
            result.redirectHint = True
            result.message = f"{message}. Dados enviados para WhatsApp como alternativa."
            self.state = SubmissionState.FALLBACK_SENT
        else:
            result.fallbackUrl = self.fallback.link_for(payload)
            result.redirectHint = False
            self.state = SubmissionState.FALLBACK_OFFERED
        result.state = self.state
        return result

    # ---------- envio ----------
    async def submit(self, payload: Mapping[str, Any]) -> SubmissionResult:
        form_type = payload.get("formType")
        url = self.config.endpoint.resolve(form_type)

        # configuração inválida: falha terminal, sem I/O
        if not self.config.endpoint.is_configured(form_type):
            log_service.warn("URL do webhook não configurada ou inválida")
            return self._fail(
                payload,
                "URL do webhook não configurada ou inválida. Por favor, configure o webhook nas configurações",
                attempts=0,
            )

        self.state = SubmissionState.SUBMITTING
        max_attempts = max(1, int(self.config.max_retries))
        errors: List[str] = []
        attempts = 0

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=self._wait(),
            retry=self._retry_predicate(),
            sleep=self.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    log_service.info(f"Tentativa {attempts}/{max_attempts} de envio ({self.transport.name})")
                    try:
                        message = await self.transport.send(url, payload)
                    except SheetsError as e:
                        errors.append(f"tentativa {attempts}: {e}")
                        raise
        except SheetsConfigError as e:
            log_service.warn("URL do webhook malformada", {"error": str(e)})
            return self._fail(
                payload,
                f"URL do webhook não configurada ou inválida: {e}. Por favor, configure o webhook nas configurações",
                attempts=0,
            )
        except SheetsRejectedError as e:
            log_service.warn("Envio recusado pelo servidor", {"error": str(e), "attempts": attempts})
            return self._fail(payload, f"Erro ao enviar para a planilha: {e}", attempts)
        except SheetsTransportError:
            log_service.error("Todas as tentativas de envio falharam", {"errors": errors})
            return self._fail(
                payload,
                f"Falha após {attempts} tentativa(s): " + "; ".join(errors),
                attempts,
            )

        self.state = SubmissionState.SUCCEEDED
        log_service.info("Envio bem-sucedido", {"attempts": attempts})
        return SubmissionResult(success=True, message=message, state=self.state, attempts=attempts)


async def submit(
    payload: Mapping[str, Any],
    config: SubmissionConfig,
    transport: Transport,
    fallback: Optional[WhatsAppFallback] = None,
    sleep: Sleep = asyncio.sleep,
) -> SubmissionResult:
    """Forma funcional: (payload, config) -> SubmissionResult."""
    return await SubmissionPipeline(config, transport, fallback=fallback, sleep=sleep).submit(payload)
