from __future__ import annotations

import pytest

from playcode.domain.wizard import MultiStepForm, steps_for_service


def _form(service="website", **kwargs):
    submitted = []

    async def on_submit(data):
        submitted.append(data)

    form = MultiStepForm(steps_for_service(service), on_submit, **kwargs)
    return form, submitted


def test_steps_per_service():
    assert [s.id for s in steps_for_service("website")][0] == "domain-hosting"
    assert len(steps_for_service("website")) == 5
    assert steps_for_service("ecommerce")[0].id == "products"
    assert [s.id for s in steps_for_service("mobile")] == ["briefing", "goals", "assets"]


def test_step_to_dict():
    step = steps_for_service("website")[-1].to_dict()
    assert step["id"] == "seo-analytics"
    assert step["optional"] is True
    assert step["hasValidation"] is False


def test_next_is_blocked_by_step_validation():
    form, _ = _form()
    form.update_form_data({"domain": {"hasExisting": True}})
    assert form.go_next() is False
    assert form.current_step == 0

    form.update_form_data({"domain": {"hasExisting": True, "currentDomain": "acme.com.br"}})
    assert form.go_next() is True
    assert form.current_step == 1
    assert form.completed_steps == {0}


def test_navigation_and_jumps():
    form, _ = _form()
    assert form.go_prev() is False
    form.go_next()
    form.go_next()
    assert form.current_step == 2

    assert form.can_jump_to(0)
    assert form.can_jump_to(2)
    assert form.can_jump_to(3) is False
    assert form.jump_to(9) is False
    assert form.jump_to(0) is True
    assert form.current_step == 0
    # step 1 was completed, so 2 stays reachable
    assert form.can_jump_to(2)


def test_progress_and_last_step():
    form, _ = _form("mobile", current_step=2)
    assert form.is_last_step
    assert form.progress == 100
    form.go_prev()
    assert round(form.progress, 2) == 66.67


def test_last_step_next_stays_put():
    form, _ = _form("mobile", current_step=2)
    assert form.go_next() is True
    assert form.current_step == 2
    assert 2 in form.completed_steps


def test_initial_step_is_clamped():
    form, _ = _form(current_step=42)
    assert form.current_step == 4


def test_empty_steps_are_rejected():
    async def noop(data):
        return None

    with pytest.raises(ValueError):
        MultiStepForm([], noop)


@pytest.mark.asyncio
async def test_autosave_runs_after_delay():
    saved = []
    now = [0.0]

    async def on_save(data):
        saved.append(data)

    form, _ = _form(on_save=on_save, clock=lambda: now[0])
    assert form.autosave_due() is False

    form.update_form_data({"design": {"hasLogo": True}})
    now[0] = 10.0
    assert await form.maybe_autosave() is False

    now[0] = 30.0
    assert await form.maybe_autosave() is True
    assert saved == [{"design": {"hasLogo": True}}]
    assert form.autosave_due() is False


@pytest.mark.asyncio
async def test_autosave_failure_is_retried_on_next_change():
    async def on_save(data):
        raise RuntimeError("network down")

    form, _ = _form(on_save=on_save, clock=lambda: 100.0)
    form.update_form_data({"content": {}})
    assert await form.maybe_autosave(now=200.0) is False
    assert form.autosave_due(now=200.0) is True


@pytest.mark.asyncio
async def test_submit_validates_current_step():
    form, submitted = _form("ecommerce")
    assert await form.submit() is False
    assert submitted == []

    form.update_form_data({"products": {"productCategories": ["camisetas"]}})
    assert await form.submit() is True
    assert submitted == [{"products": {"productCategories": ["camisetas"]}}]
    assert form.is_submitting is False


def test_to_progress():
    form, _ = _form(completed_steps=[1, 0], initial_data={"a": 1})
    assert form.to_progress() == {"currentStep": 0, "completedSteps": [0, 1], "formData": {"a": 1}}
