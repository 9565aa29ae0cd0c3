"""
Onboarding report export (HTML always, PDF when weasyprint is installed).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from playcode.core.errors import PlayCodeError, ValidationError
from playcode.domain.onboarding import EXPORT_PLAN_NAMES, SERVICE_NAMES
from playcode.presentation import pdf
from playcode.presentation.renderer import TemplateRenderer

logger = logging.getLogger(__name__)

NOT_INFORMED = "Nao informado"

FEATURE_LABELS = (
    ("contactForm", "Formulario de Contato"),
    ("livechat", "Chat Online"),
    ("newsletter", "Newsletter"),
    ("blog", "Blog"),
    ("ecommerce", "E-commerce"),
    ("multiLanguage", "Multi-idiomas"),
)

NEXT_STEPS = [
    "Kickoff Meeting - Alinhamento detalhado",
    "Wireframes - Estrutura e layout",
    "Design - Identidade visual completa",
    "Desenvolvimento - Codificacao e testes",
    "Deploy - Lancamento e configuracao",
    "Suporte - 30 dias pos-lancamento",
]

CONTENT_TYPES = {"html": "text/html; charset=utf-8", "pdf": "application/pdf"}


@dataclass(eq=False)
class PdfUnavailableError(PlayCodeError):
    message: str = "Exportacao em PDF indisponivel: instale o extra 'pdf' (weasyprint)"
    code: str = "PDF_UNAVAILABLE"

    status_code: ClassVar[int] = 501


@dataclass
class ExportedDocument:
    filename: str
    content_type: str
    content: bytes


Section = Dict[str, Any]


def _text(value: Any) -> str:
    if value is None or value == "" or value == []:
        return NOT_INFORMED
    return str(value)


def _yes_no(flag: Any, yes: str = "Sim", no: str = "Nao") -> str:
    return yes if flag else no


def _date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%d/%m/%Y")
        except ValueError:
            return value
    return NOT_INFORMED


def active_features(features: Dict[str, Any]) -> str:
    active = [label for key, label in FEATURE_LABELS if features.get(key)]
    return ", ".join(active) if active else "Funcionalidades padrao do plano"


def content_areas(content: Dict[str, Any]) -> str:
    areas = content.get("contentAreas") or []
    return ", ".join(areas) if areas else "Estrutura padrao do servico"


def build_sections(onboarding: Dict[str, Any]) -> List[Section]:
    form = onboarding.get("formData") or {}
    domain = form.get("domain") or {}
    hosting = form.get("hosting") or {}
    design = form.get("design") or {}
    content = form.get("content") or {}
    features = form.get("features") or {}
    seo = form.get("seo") or {}

    def section(title: str, rows: List[Tuple[str, str]]) -> Section:
        return {"title": title, "rows": rows}

    service = onboarding.get("serviceType")
    plan = onboarding.get("planType")
    return [
        section(
            "INFORMACOES DO CLIENTE",
            [
                ("Cliente", _text(onboarding.get("customerName"))),
                ("Email", _text(onboarding.get("customerEmail"))),
                ("Telefone", _text(onboarding.get("customerPhone"))),
                ("Servico", _text(SERVICE_NAMES.get(service, service))),
                ("Plano", _text(EXPORT_PLAN_NAMES.get(plan, plan))),
                ("Status", "CONCLUIDO" if onboarding.get("isCompleted") else "EM ANDAMENTO"),
                ("Data", _date(onboarding.get("createdAt"))),
            ],
        ),
        section(
            "DOMINIO E HOSPEDAGEM",
            [
                ("Dominio existente", _yes_no(domain.get("hasExisting"))),
                ("Dominio atual", _text(domain.get("currentDomain"))),
                ("Novo dominio", _yes_no(domain.get("needsNew"))),
                ("Dominio desejado", _text(domain.get("preferredDomain"))),
                ("Performance", _text(hosting.get("performanceRequirements"))),
                ("Hospedagem existente", _yes_no(hosting.get("hasExisting"))),
            ],
        ),
        section(
            "DESIGN E IDENTIDADE VISUAL",
            [
                ("Logo existente", _yes_no(design.get("hasLogo"), no="Nao - Sera criado")),
                ("Paleta de cores", _text(design.get("colorPreferences"))),
                ("Estilo preferido", _text(design.get("stylePreference"))),
                (
                    "Sites de referencia",
                    _yes_no(design.get("designReferences"), "Fornecidos pelo cliente", "Nao fornecidos"),
                ),
            ],
        ),
        section(
            "ESTRATEGIA DE CONTEUDO",
            [
                ("Conteudo existente", _yes_no(content.get("hasExistingContent"), "Cliente possui", "Sera criado")),
                ("Criacao necessaria", _yes_no(content.get("needsContentCreation"))),
                ("Publico-alvo", _text(content.get("targetAudience"))),
                ("Areas de conteudo", content_areas(content)),
            ],
        ),
        section(
            "FUNCIONALIDADES E RECURSOS",
            [
                ("Recursos selecionados", active_features(features)),
                ("Customizacoes", _text(features.get("customFeatures"))),
            ],
        ),
        section(
            "SEO E MARKETING DIGITAL",
            [
                ("Palavras-chave", _text(seo.get("keywords"))),
                ("Analise concorrencia", _text(seo.get("competitors"))),
                ("Google Analytics", _yes_no(seo.get("hasGoogleAnalytics"), "Configurar", "Nao solicitado")),
                ("Google Ads", _yes_no(seo.get("hasGoogleAds"), "Preparar", "Nao solicitado")),
                ("Objetivos SEO", _text(seo.get("seoGoals"))),
            ],
        ),
    ]


def export_filename(onboarding: Dict[str, Any], extension: str) -> str:
    name = re.sub(r"\s+", "-", str(onboarding.get("customerName") or "cliente").strip())
    return f"onboarding-{name}-{onboarding.get('id', '')}.{extension}"


class ExportService:
    def __init__(self, onboarding_service=None, renderer: Optional[TemplateRenderer] = None):
        self.onboarding_service = onboarding_service
        self.renderer = renderer or TemplateRenderer()

    def resolve(self, onboarding_data: Optional[Dict[str, Any]], onboarding_id: Optional[str]) -> Dict[str, Any]:
        if onboarding_data:
            return onboarding_data
        if onboarding_id and self.onboarding_service is not None:
            return self.onboarding_service.require_onboarding(onboarding_id).to_api()
        raise ValidationError("Dados do onboarding são obrigatórios", code="MISSING_ONBOARDING_DATA")

    def render_html(self, onboarding: Dict[str, Any], now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        return self.renderer.render(
            "export/onboarding.html",
            customer_name=onboarding.get("customerName") or "",
            sections=build_sections(onboarding),
            next_steps=NEXT_STEPS,
            generated_at=now.strftime("%d/%m/%Y as %H:%M:%S"),
        )

    def export(self, onboarding: Dict[str, Any], fmt: str = "pdf") -> ExportedDocument:
        fmt = (fmt or "pdf").lower()
        if fmt not in CONTENT_TYPES:
            raise ValidationError(f"Formato não suportado: {fmt}", code="INVALID_FORMAT")

        html = self.render_html(onboarding)
        if fmt == "html":
            content = html.encode("utf-8")
        else:
            rendered = pdf.render_pdf(html)
            if rendered is None:
                raise PdfUnavailableError()
            content = rendered

        filename = export_filename(onboarding, fmt)
        logger.info(f"Exported onboarding {onboarding.get('id')} as {fmt} ({len(content)} bytes)")
        return ExportedDocument(filename=filename, content_type=CONTENT_TYPES[fmt], content=content)
