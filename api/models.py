# api/models.py
from __future__ import annotations

from typing import Dict, Optional, Literal
from pydantic import BaseModel, Field


# =========================
# Configurações (/settings)
# =========================

class SettingsIn(BaseModel):
    """URL do webhook do Google Apps Script (opcionalmente por tipo de formulário) + flags."""
    webhookUrl: Optional[str] = None
    formType: Optional[Literal["cliente", "lead"]] = None
    autoFallback: Optional[bool] = None
    logLevel: Optional[Literal["debug", "info", "warn", "error"]] = None
    debug: Optional[bool] = None


class SettingsOut(BaseModel):
    webhookUrl: str
    urlsByFormType: Dict[str, str] = Field(default_factory=dict)
    configured: bool
    autoFallback: bool = False
    logLevel: str = "debug"
    debug: bool = True


# =========================
# Prévia do formulário de cliente
# =========================

class FieldChange(BaseModel):
    """Mudança de um campo + valores atuais do formulário."""
    field: str
    value: Optional[str] = ""
    values: Dict[str, str] = Field(default_factory=dict)


class PreviewOut(BaseModel):
    values: Dict[str, str]
    valorTotal: str
    parcelamentoHint: str = ""


# =========================
# Fallback
# =========================

class FallbackRequest(BaseModel):
    formType: Literal["cliente", "lead"]
    data: Dict[str, str] = Field(default_factory=dict)
