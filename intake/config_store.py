# intake/config_store.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from loguru import logger

WEBHOOK_URL_STORAGE_KEY = "google_sheets_webhook_url"
EXPECTED_HOST = "script.google.com"


def is_plausible_endpoint(url: Optional[str], expected_host: str = EXPECTED_HOST) -> bool:
    """Checagem de forma: não vazia, https://, com o host esperado e URL bem formada."""
    if not url:
        return False
    url = url.strip()
    if not (url.startswith("https://") and expected_host in url):
        return False
    try:
        httpx.URL(url)
    except httpx.InvalidURL:
        return False
    return True


@dataclass
class EndpointConfig:
    """URL padrão + URLs opcionais por tipo de formulário."""

    url: str = ""
    urls_by_form_type: Dict[str, str] = field(default_factory=dict)
    expected_host: str = EXPECTED_HOST

    def resolve(self, form_type: Optional[str] = None) -> str:
        if form_type and self.urls_by_form_type.get(form_type):
            return self.urls_by_form_type[form_type].strip()
        return (self.url or "").strip()

    def is_configured(self, form_type: Optional[str] = None) -> bool:
        return is_plausible_endpoint(self.resolve(form_type), self.expected_host)


def _storage_key(form_type: Optional[str] = None) -> str:
    return f"{WEBHOOK_URL_STORAGE_KEY}_{form_type}" if form_type else WEBHOOK_URL_STORAGE_KEY


class ConfigStore:
    """
    Armazenamento local (arquivo JSON) da URL do webhook e de flags leves
    (debug, log_level, auto_fallback). Persiste entre execuções; sem criptografia.
    """

    def __init__(self, path: str, expected_host: str = EXPECTED_HOST) -> None:
        self.path = Path(path)
        self.expected_host = expected_host

    # ---------- I/O ----------
    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Configuração local ilegível em {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    # ---------- URL do webhook ----------
    def get(self, form_type: Optional[str] = None) -> str:
        value = self._read().get(_storage_key(form_type))
        return value if isinstance(value, str) else ""

    def set(self, url: str, form_type: Optional[str] = None) -> bool:
        """Persiste a URL se não estiver em branco. Retorna True se salvou."""
        if not url or not url.strip():
            return False
        data = self._read()
        data[_storage_key(form_type)] = url.strip()
        self._write(data)
        logger.info(f"💾 URL do webhook salva ({form_type or 'padrão'})")
        return True

    def is_configured(self, form_type: Optional[str] = None) -> bool:
        url = self.get(form_type) if form_type else ""
        return is_plausible_endpoint(url or self.get(), self.expected_host)

    # ---------- Flags ----------
    def get_flag(self, name: str, default: Any = None) -> Any:
        return self._read().get(name, default)

    def set_flag(self, name: str, value: Any) -> None:
        data = self._read()
        data[name] = value
        self._write(data)

    def endpoint_config(self, default_url: str = "") -> EndpointConfig:
        """URL salva tem precedência sobre a URL padrão do ambiente."""
        by_type = {}
        for form_type in ("cliente", "lead"):
            url = self.get(form_type)
            if url:
                by_type[form_type] = url
        return EndpointConfig(
            url=self.get() or default_url,
            urls_by_form_type=by_type,
            expected_host=self.expected_host,
        )
