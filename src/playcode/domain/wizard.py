"""
Multi-step onboarding form controller.

Holds the navigation rules of the onboarding wizard (linear steps, jumps back
to visited steps, completed-step bookkeeping) and the autosave timer. Time is
injected through `clock`/`now` so the autosave is deterministic under test.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

StepValidator = Callable[[Dict[str, Any]], bool]
SaveCallback = Callable[[Dict[str, Any]], Awaitable[None]]
SubmitCallback = Callable[[Dict[str, Any]], Awaitable[None]]

AUTOSAVE_DELAY_SECONDS = 30.0


@dataclass
class FormStep:
    id: str
    title: str
    description: str
    validation: Optional[StepValidator] = None
    optional: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "optional": self.optional,
            "hasValidation": self.validation is not None,
        }


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    return value if isinstance(value, dict) else {}


def _domain_ok(data: Dict[str, Any]) -> bool:
    domain = _section(data, "domain")
    if domain.get("hasExisting") and not str(domain.get("currentDomain") or "").strip():
        return False
    if domain.get("needsNew") and not str(domain.get("preferredDomain") or "").strip():
        return False
    return True


def _products_ok(data: Dict[str, Any]) -> bool:
    return bool(_section(data, "products").get("productCategories"))


def _payment_ok(data: Dict[str, Any]) -> bool:
    return bool(_section(data, "payment").get("preferredGateways"))


def _shipping_ok(data: Dict[str, Any]) -> bool:
    return bool(_section(data, "shipping").get("shippingMethods"))


def _briefing_ok(data: Dict[str, Any]) -> bool:
    return bool(str(_section(data, "briefing").get("summary") or "").strip())


WEBSITE_STEPS: List[FormStep] = [
    FormStep("domain-hosting", "Domínio & Hospedagem",
             "Configurações de domínio e hospedagem do seu website", _domain_ok),
    FormStep("design-branding", "Design & Identidade", "Visual, cores, logo e referências de design"),
    FormStep("content", "Conteúdo", "Textos, imagens e materiais do website"),
    FormStep("features", "Funcionalidades", "Recursos e integrações necessárias"),
    FormStep("seo-analytics", "SEO & Analytics", "Otimização para mecanismos de busca", optional=True),
]

ECOMMERCE_STEPS: List[FormStep] = [
    FormStep("products", "Produtos & Catálogo", "Informações sobre produtos e categorias", _products_ok),
    FormStep("payment", "Pagamentos", "Gateways e formas de pagamento", _payment_ok),
    FormStep("shipping", "Entrega & Logística", "Métodos de envio e entrega", _shipping_ok),
    FormStep("integrations", "Integrações", "ERP, CRM e marketplaces", optional=True),
    FormStep("legal", "Legal & Fiscal", "Aspectos legais e tributários"),
]

GENERIC_STEPS: List[FormStep] = [
    FormStep("briefing", "Briefing", "Visão geral do projeto", _briefing_ok),
    FormStep("goals", "Objetivos", "Metas e indicadores de sucesso"),
    FormStep("assets", "Materiais", "Arquivos, acessos e referências", optional=True),
]


def steps_for_service(service_type: str) -> List[FormStep]:
    if service_type == "website":
        return list(WEBSITE_STEPS)
    if service_type == "ecommerce":
        return list(ECOMMERCE_STEPS)
    return list(GENERIC_STEPS)


class MultiStepForm:
    """State machine behind the onboarding wizard."""

    def __init__(
        self,
        steps: List[FormStep],
        on_submit: SubmitCallback,
        on_save: Optional[SaveCallback] = None,
        initial_data: Optional[Dict[str, Any]] = None,
        *,
        current_step: int = 0,
        completed_steps: Optional[List[int]] = None,
        autosave_delay: float = AUTOSAVE_DELAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not steps:
            raise ValueError("MultiStepForm needs at least one step")
        self.steps = steps
        self.on_submit = on_submit
        self.on_save = on_save
        self.form_data: Dict[str, Any] = dict(initial_data or {})
        self.current_step = max(0, min(current_step, len(steps) - 1))
        self.completed_steps: set[int] = set(completed_steps or [])
        self.autosave_delay = autosave_delay
        self._clock = clock
        self._last_change: Optional[float] = None
        self._saving = False
        self.is_submitting = False

    # ---- data ----

    def update_form_data(self, partial: Dict[str, Any]) -> None:
        self.form_data = {**self.form_data, **(partial or {})}
        self._last_change = self._clock()

    # ---- navigation ----

    @property
    def is_last_step(self) -> bool:
        return self.current_step == len(self.steps) - 1

    @property
    def progress(self) -> float:
        return (self.current_step + 1) / len(self.steps) * 100

    def validate_current_step(self) -> bool:
        step = self.steps[self.current_step]
        if step.validation is None:
            return True
        return bool(step.validation(self.form_data))

    def go_next(self) -> bool:
        if not self.validate_current_step():
            return False
        self.completed_steps.add(self.current_step)
        if not self.is_last_step:
            self.current_step += 1
        return True

    def go_prev(self) -> bool:
        if self.current_step > 0:
            self.current_step -= 1
            return True
        return False

    def can_jump_to(self, index: int) -> bool:
        if index < 0 or index >= len(self.steps):
            return False
        return index <= self.current_step or (index - 1) in self.completed_steps

    def jump_to(self, index: int) -> bool:
        if not self.can_jump_to(index):
            return False
        self.current_step = index
        return True

    # ---- autosave ----

    def autosave_due(self, now: Optional[float] = None) -> bool:
        if self.on_save is None or not self.form_data or self._saving:
            return False
        if self._last_change is None:
            return False
        now = self._clock() if now is None else now
        return now - self._last_change >= self.autosave_delay

    async def maybe_autosave(self, now: Optional[float] = None) -> bool:
        """Run the save callback when due. Returns True when a save happened."""
        if not self.autosave_due(now):
            return False
        self._saving = True
        try:
            await self.on_save(dict(self.form_data))  # type: ignore[misc]
            self._last_change = None
            return True
        except Exception as e:
            # Autosave never interrupts the user; the next change retries.
            logger.error(f"Auto-save failed: {e}")
            return False
        finally:
            self._saving = False

    # ---- submit ----

    async def submit(self) -> bool:
        if not self.validate_current_step():
            return False
        self.is_submitting = True
        try:
            await self.on_submit(dict(self.form_data))
        finally:
            self.is_submitting = False
        return True

    def to_progress(self) -> Dict[str, Any]:
        return {
            "currentStep": self.current_step,
            "completedSteps": sorted(self.completed_steps),
            "formData": dict(self.form_data),
        }
