# api/tests/test_fallback.py
from urllib.parse import parse_qs, urlparse

from intake.fallback import FALLBACK_DISCLAIMER, WhatsAppFallback, build_whatsapp_link, render_whatsapp_message

LEAD = {
    "formType": "lead",
    "nome": "João Souza",
    "telefone": "(11) 98765-4321",
    "instagram": "",
    "interesse": "Run Muscle",
    "statusLead": "Novo",
    "dataLembrete": "01/04/24",
    "motivoLembrete": "Retornar",
    "observacoes": "",
}

CLIENTE = {
    "formType": "cliente",
    "nome": "Maria Silva",
    "cpf": "123.456.789-01",
    "telefone": "(82) 93460-4601",
    "genero": "Feminino",
    "linha": "Oversized",
    "tipo": "Camisa",
    "cor": "Preto",
    "tamanho": "M",
    "valor": "R$ 100,00",
    "formaPagamento": "PIX",
    "localizacao": "",
    "frete": "15,00",
    "dataPagamento": "05/03/24",
    "dataEntrega": "10/03/24",
    "valorTotal": "R$ 115,00",
    "observacao": "Entregar à tarde",
}


def test_lead_template_skips_empty_optional_fields():
    msg = render_whatsapp_message(LEAD)
    assert msg.startswith("📋 *DADOS DO LEAD*\n\n")
    assert "👤 *Nome:* João Souza\n" in msg
    assert "🚩 *Status:* Novo\n" in msg
    assert "Instagram" not in msg
    assert "Observações" not in msg
    assert msg.endswith(FALLBACK_DISCLAIMER)


def test_cliente_template():
    msg = render_whatsapp_message(CLIENTE)
    assert msg.startswith("📋 *DADOS DO CLIENTE*\n\n")
    assert "🆔 *CPF:* 123.456.789-01\n" in msg
    assert "📦 *Produto:* Oversized Camisa\n" in msg
    assert "💵 *Valor Total:* R$ 115,00\n" in msg
    assert "📝 *Observação:* Entregar à tarde\n" in msg
    assert "Localização" not in msg


def test_link_targets_fixed_number_with_encoded_text():
    link = build_whatsapp_link(CLIENTE)
    parsed = urlparse(link)
    assert parsed.scheme == "https"
    assert parsed.netloc == "wa.me"
    assert parsed.path == "/558293460460"
    assert parse_qs(parsed.query)["text"][0] == render_whatsapp_message(CLIENTE)


def test_send_hands_link_to_opener():
    opened = []
    fb = WhatsAppFallback(number="5511999999999", opener=opened.append)
    url = fb.send(LEAD)
    assert opened == [url]
    assert url.startswith("https://wa.me/5511999999999?text=")


def test_repeated_sends_keep_no_history():
    fb = WhatsAppFallback(opener=lambda url: None)
    urls = {fb.send(LEAD) for _ in range(3)}
    assert len(urls) == 1
    assert vars(fb) == {"number": fb.number, "opener": fb.opener}
