# api/tests/test_validators.py
from datetime import date

import pytest

from intake.validators import ClienteForm, FormValidationError, LeadForm, validate_form

CLIENTE = {
    "nome": "Maria Silva",
    "cpf": "123.456.789-01",
    "telefone": "(82) 93460-4601",
    "genero": "Feminino",
    "linha": "Oversized",
    "tipo": "Camisa",
    "cor": "Preto",
    "tamanho": "M",
    "valor": "R$ 100,00",
    "formaPagamento": "Crédito",
    "parcelamento": "5x com juros",
    "cupom": "Personalizado",
    "cupomPersonalizado": "20% OFF",
    "frete": "15,00",
    "dataPagamento": "2024-03-05",
    "dataEntrega": "10/03/24",
    "valorTotal": "R$ 100,60",
}

LEAD = {
    "nome": "João Souza",
    "telefone": "(11) 98765-4321",
    "instagram": "@joao",
    "interesse": "Run Muscle",
    "statusLead": "Em negociação",
    "dataLembrete": "2024-04-01",
    "motivoLembrete": "Retornar proposta",
}


def test_valid_cliente_payload_normalizes_dates_and_custom_coupon():
    form = validate_form("cliente", CLIENTE)
    assert isinstance(form, ClienteForm)
    assert form.dataEntrega == date(2024, 3, 10)

    payload = form.to_payload()
    assert payload["formType"] == "cliente"
    assert payload["dataPagamento"] == "05/03/24"
    assert payload["dataEntrega"] == "10/03/24"
    assert payload["cupom"] == "20% OFF"
    assert "cupomPersonalizado" not in payload


def test_valid_lead_payload():
    form = validate_form("lead", LEAD)
    assert isinstance(form, LeadForm)
    payload = form.to_payload()
    assert payload["formType"] == "lead"
    assert payload["dataLembrete"] == "01/04/24"
    assert payload["observacoes"] == ""


def test_cpf_is_optional_but_shaped():
    data = {**CLIENTE, "cpf": ""}
    assert validate_form("cliente", data).to_payload()["cpf"] == ""

    with pytest.raises(FormValidationError) as exc:
        validate_form("cliente", {**CLIENTE, "cpf": "12345678901"})
    assert exc.value.errors == {"cpf": "CPF inválido"}


def test_invalid_fields_are_reported_per_field():
    data = {**LEAD, "nome": "Jo", "telefone": "11987654321", "statusLead": "Perdido"}
    del data["dataLembrete"]

    with pytest.raises(FormValidationError) as exc:
        validate_form("lead", data)

    errors = exc.value.errors
    assert errors["nome"] == "Nome deve ter pelo menos 3 caracteres"
    assert errors["telefone"] == "Telefone inválido"
    assert errors["statusLead"] == "Status do lead inválido"
    assert errors["dataLembrete"] == "Data de lembrete é obrigatória"
    assert "interesse" not in errors


def test_missing_required_cliente_fields():
    with pytest.raises(FormValidationError) as exc:
        validate_form("cliente", {"nome": "Ana Paula"})
    errors = exc.value.errors
    for field in ("telefone", "linha", "tipo", "cor", "tamanho", "valor", "frete", "dataPagamento", "dataEntrega", "valorTotal"):
        assert field in errors
    assert "nome" not in errors


def test_unknown_form_type():
    with pytest.raises(FormValidationError) as exc:
        validate_form("fornecedor", {})
    assert "formType" in exc.value.errors
