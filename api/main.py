# api/main.py - Delta Sells Intake API (cliente/lead -> Google Sheets, fallback WhatsApp)

from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger

from api.models import FallbackRequest, FieldChange, PreviewOut, SettingsIn, SettingsOut
from api.settings import settings
from intake import log_service
from intake.config_store import ConfigStore, is_plausible_endpoint
from intake.fallback import WhatsAppFallback
from intake.form_state import CustomerFormState
from intake.graph import run_intake
from intake.submission import SubmissionConfig
from intake.tools.sheets_tools import build_transport
from intake.validators import FORM_MODELS, FormValidationError, validate_form

VERSION = "1.0"

app = FastAPI(title="Delta Sells Intake", version=VERSION)

# Armazenamento local da URL do webhook + flags
STORE = ConfigStore(settings.CONFIG_STORE_PATH, expected_host=settings.EXPECTED_HOST)


# ======================
# Configuração efetiva
# ======================
def _log_level() -> str:
    return str(STORE.get_flag("log_level", settings.LOG_LEVEL))


def _log_enabled() -> bool:
    return bool(STORE.get_flag("debug", settings.LOG_ENABLED))


def _auto_fallback() -> bool:
    return bool(STORE.get_flag("auto_fallback", settings.AUTO_FALLBACK))


def _submission_config() -> SubmissionConfig:
    return SubmissionConfig(
        endpoint=STORE.endpoint_config(settings.GOOGLE_SHEETS_URL),
        max_retries=settings.MAX_RETRIES,
        retry_delay=settings.RETRY_DELAY,
        backoff=settings.RETRY_BACKOFF,
        auto_fallback=_auto_fallback(),
        retry_on_rejection=settings.RETRY_ON_REJECTION,
    )


def _view_urls() -> Dict[str, str]:
    urls = {
        "cliente": settings.SHEET_VIEW_URL_CLIENTE,
        "lead": settings.SHEET_VIEW_URL_LEAD,
    }
    return {k: v for k, v in urls.items() if v}


def _settings_out() -> SettingsOut:
    endpoint = STORE.endpoint_config(settings.GOOGLE_SHEETS_URL)
    return SettingsOut(
        webhookUrl=endpoint.url,
        urlsByFormType=endpoint.urls_by_form_type,
        configured=endpoint.is_configured(),
        autoFallback=_auto_fallback(),
        logLevel=_log_level(),
        debug=_log_enabled(),
    )


# ======================
# ENDPOINTS
# ======================
@app.get("/health")
async def health():
    config = _submission_config()
    return {
        "status": "ok",
        "version": VERSION,
        "webhook_configured": config.endpoint.is_configured(),
        "submission": {
            "transport": settings.TRANSPORT,
            "max_retries": config.max_retries,
            "retry_delay": config.retry_delay,
            "backoff": config.backoff,
            "auto_fallback": config.auto_fallback,
            "retry_on_rejection": config.retry_on_rejection,
            "frame_timeout": settings.FRAME_TIMEOUT,
        },
        "logging": {"enabled": _log_enabled(), "level": _log_level()},
    }


@app.get("/settings", response_model=SettingsOut)
async def get_settings():
    return _settings_out()


@app.put("/settings", response_model=SettingsOut)
async def save_settings(body: SettingsIn):
    if body.webhookUrl is not None:
        if not is_plausible_endpoint(body.webhookUrl, settings.EXPECTED_HOST):
            raise HTTPException(
                status_code=400,
                detail="URL inválida. Por favor, forneça uma URL válida do Google Apps Script.",
            )
        STORE.set(body.webhookUrl, body.formType)
    if body.autoFallback is not None:
        STORE.set_flag("auto_fallback", body.autoFallback)
    if body.logLevel is not None:
        STORE.set_flag("log_level", body.logLevel)
    if body.debug is not None:
        STORE.set_flag("debug", body.debug)

    log_service.configure(enabled=_log_enabled(), level=_log_level())
    logger.info("⚙️ Configurações salvas")
    return _settings_out()


@app.post("/forms/cliente/preview", response_model=PreviewOut)
async def preview_cliente(change: FieldChange):
    """Aplica a mudança de um campo (máscara + recálculo do total) e devolve o formulário."""
    state = CustomerFormState(change.values)
    values = state.on_change(change.field, change.value)
    return PreviewOut(values=values, valorTotal=values["valorTotal"], parcelamentoHint=state.installment_hint())


@app.post("/forms/{form_type}")
async def submit_form(form_type: str, request: Request):
    if form_type not in FORM_MODELS:
        raise HTTPException(status_code=404, detail=f"Formulário desconhecido: {form_type}")
    try:
        data: Any = await request.json()
    except Exception:
        raise HTTPException(status_code=400, detail="Corpo da requisição não é JSON válido")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Corpo da requisição deve ser um objeto JSON")

    try:
        form = validate_form(form_type, data)
    except FormValidationError as e:
        log_service.warn(f"Formulário de {form_type} - validação falhou", e.errors)
        return JSONResponse(status_code=422, content={"errors": e.errors})

    config = _submission_config()
    transport = build_transport(
        settings.TRANSPORT,
        timeout=settings.HTTP_TIMEOUT,
        frame_timeout=settings.FRAME_TIMEOUT,
    )
    fallback = WhatsAppFallback(number=settings.WHATSAPP_FALLBACK_NUMBER)

    result = await run_intake(form, config, transport, fallback=fallback, view_urls=_view_urls())

    if result.success:
        status = 200
    elif result.attempts == 0:
        status = 503  # webhook não configurado
    else:
        status = 502
    return JSONResponse(status_code=status, content=result.model_dump(mode="json"))


@app.post("/fallback/whatsapp")
async def whatsapp_fallback(body: FallbackRequest):
    """Envio manual via WhatsApp: redireciona para o link wa.me já preenchido."""
    fallback = WhatsAppFallback(number=settings.WHATSAPP_FALLBACK_NUMBER)
    url = fallback.send({**body.data, "formType": body.formType})
    return RedirectResponse(url, status_code=303)


@app.get("/sheets/{form_type}")
async def open_sheet(form_type: str):
    url = _view_urls().get(form_type)
    if not url:
        raise HTTPException(status_code=404, detail="Planilha não configurada para este formulário")
    log_service.info("Abrindo Google Sheet para visualização")
    return RedirectResponse(url, status_code=307)


# ======================
# Startup
# ======================
@app.on_event("startup")
async def startup():
    log_service.configure(enabled=_log_enabled(), level=_log_level())
    config = _submission_config()
    logger.info(f"🚀 Delta Sells Intake v{VERSION} iniciado")
    logger.info(f"📊 Webhook: {'configurado' if config.endpoint.is_configured() else 'NÃO CONFIGURADO'}")
    logger.info(
        f"🔁 Envio: transporte={settings.TRANSPORT}, MAX_RETRIES={config.max_retries}, "
        f"RETRY_DELAY={config.retry_delay}s ({config.backoff}), AUTO_FALLBACK={config.auto_fallback}"
    )
    logger.info(f"📝 Log: {'ativo' if _log_enabled() else 'desativado'} (nível {_log_level()})")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
