from __future__ import annotations

from datetime import datetime

import pytest

from playcode.application.services.export_service import (
    ExportService,
    PdfUnavailableError,
    active_features,
    build_sections,
    export_filename,
)
from playcode.core.errors import NotFoundError, ValidationError
from playcode.presentation import pdf

ONBOARDING = {
    "id": "onboarding_1",
    "customerName": "Ana  Souza",
    "customerEmail": "ana@example.com",
    "serviceType": "website",
    "planType": "pro",
    "isCompleted": True,
    "createdAt": "2024-05-01T10:00:00Z",
    "formData": {
        "domain": {"hasExisting": True, "currentDomain": "acme.com.br"},
        "design": {"hasLogo": False},
        "features": {"blog": True, "ecommerce": True},
        "content": {"contentAreas": ["Sobre", "Servicos"]},
    },
}


def _rows(sections, title):
    return dict(next(s for s in sections if s["title"] == title)["rows"])


def test_build_sections():
    sections = build_sections(ONBOARDING)
    client = _rows(sections, "INFORMACOES DO CLIENTE")
    assert client["Servico"] == "Website/Landing Page"
    assert client["Plano"] == "Pro Guild - R$ 2.497"
    assert client["Status"] == "CONCLUIDO"
    assert client["Data"] == "01/05/2024"
    assert client["Telefone"] == "Nao informado"

    assert _rows(sections, "DOMINIO E HOSPEDAGEM")["Dominio atual"] == "acme.com.br"
    assert _rows(sections, "DESIGN E IDENTIDADE VISUAL")["Logo existente"] == "Nao - Sera criado"
    assert _rows(sections, "ESTRATEGIA DE CONTEUDO")["Areas de conteudo"] == "Sobre, Servicos"
    assert _rows(sections, "FUNCIONALIDADES E RECURSOS")["Recursos selecionados"] == "Blog, E-commerce"


def test_defaults_for_empty_form():
    assert active_features({}) == "Funcionalidades padrao do plano"
    client = _rows(build_sections({"serviceType": "custom"}), "INFORMACOES DO CLIENTE")
    assert client["Servico"] == "custom"
    assert client["Status"] == "EM ANDAMENTO"


def test_export_filename():
    assert export_filename(ONBOARDING, "pdf") == "onboarding-Ana-Souza-onboarding_1.pdf"
    assert export_filename({}, "html") == "onboarding-cliente-.html"


def test_render_html():
    html = ExportService().render_html(ONBOARDING, now=datetime(2024, 5, 2, 14, 30))
    assert "Relatorio de Onboarding - Ana  Souza" in html
    assert "Kickoff Meeting - Alinhamento detalhado" in html
    assert "02/05/2024 as 14:30:00" in html


def test_export_html():
    document = ExportService().export(ONBOARDING, "HTML")
    assert document.content_type == "text/html; charset=utf-8"
    assert document.filename.endswith(".html")
    assert b"PLAYCODE AGENCY" in document.content


def test_export_rejects_unknown_format():
    with pytest.raises(ValidationError) as exc_info:
        ExportService().export(ONBOARDING, "docx")
    assert exc_info.value.code == "INVALID_FORMAT"


def test_pdf_without_weasyprint(monkeypatch):
    monkeypatch.setattr(pdf, "HTML", None)
    assert not pdf.pdf_available()
    with pytest.raises(PdfUnavailableError) as exc_info:
        ExportService().export(ONBOARDING, "pdf")
    assert exc_info.value.status_code == 501


def test_pdf_uses_weasyprint(monkeypatch):
    rendered = []

    class FakeHTML:
        def __init__(self, string):
            rendered.append(string)

        def write_pdf(self):
            return b"%PDF-1.7"

    monkeypatch.setattr(pdf, "HTML", FakeHTML)
    document = ExportService().export(ONBOARDING)
    assert document.content == b"%PDF-1.7"
    assert document.content_type == "application/pdf"
    assert "PLAYCODE AGENCY" in rendered[0]


def test_resolve():
    class Onboardings:
        def require_onboarding(self, onboarding_id):
            raise NotFoundError("Onboarding não encontrado")

    service = ExportService(Onboardings())
    assert service.resolve(ONBOARDING, None) is ONBOARDING
    with pytest.raises(NotFoundError):
        service.resolve(None, "missing")
    with pytest.raises(ValidationError) as exc_info:
        service.resolve(None, None)
    assert exc_info.value.code == "MISSING_ONBOARDING_DATA"
