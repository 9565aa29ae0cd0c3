from __future__ import annotations

import pytest

from playcode.core.errors import ValidationError
from playcode.infrastructure.security.input_validation import (
    ApprovalDecisionIn,
    ContactForm,
    IPSecurity,
    ProposalIn,
    client_ip,
    detect_suspicious_content,
    is_valid_email,
    is_valid_ip,
    parse_model,
    sanitize_email,
    sanitize_html,
    sanitize_phone,
    sanitize_text,
    sanitize_url,
)


def test_client_ip_header_priority():
    assert client_ip({"cf-connecting-ip": "1.1.1.1", "x-real-ip": "2.2.2.2"}) == "1.1.1.1"
    assert client_ip({"x-real-ip": "2.2.2.2", "x-forwarded-for": "3.3.3.3"}) == "2.2.2.2"
    assert client_ip({"x-forwarded-for": " 3.3.3.3 , 4.4.4.4"}) == "3.3.3.3"
    assert client_ip({}) == "unknown"


def test_ip_helpers():
    assert is_valid_ip("10.0.0.1")
    assert is_valid_ip("::1")
    assert not is_valid_ip("999.1.1.1")

    security = IPSecurity(["6.6.6.6", " "])
    assert security.is_blocked("6.6.6.6")
    assert not security.is_blocked("7.7.7.7")
    assert not IPSecurity(["6.6.6.6"], enforce=False).is_blocked("6.6.6.6")


def test_suspicious_content():
    assert "script" in detect_suspicious_content("<script>alert(1)</script>")
    assert "eval\\(" in detect_suspicious_content("eval(x)")
    assert detect_suspicious_content("Quero um site novo para minha loja") == []


def test_sanitizers():
    assert sanitize_text("  O'Brien; \"x\"  ") == "OBrien x"
    assert sanitize_text("a" * 1500) == "a" * 1000
    assert sanitize_html("<b>Olá</b><script>alert(1)</script> mundo") == "Olá mundo"
    assert sanitize_phone("+55 (11) 99999-9999 ext") == "+55 (11) 99999-9999"
    assert sanitize_email("  Ana@Example.COM ") == "ana@example.com"
    with pytest.raises(ValidationError):
        sanitize_email("not-an-email")
    assert sanitize_url("https://playcode.agency/x") == "https://playcode.agency/x"
    with pytest.raises(ValidationError):
        sanitize_url("ftp://files")
    assert is_valid_email("a@b.co")
    assert not is_valid_email("a@b")


def _contact(**overrides):
    data = {
        "name": "Ana Souza",
        "email": "ANA@example.com",
        "message": "Quero um site novo para a minha loja.",
    }
    data.update(overrides)
    return data


def test_contact_form_normalizes_fields():
    form = ContactForm.model_validate(_contact(phone="(11) 9999-0000", company="Acme's"))
    assert form.email == "ana@example.com"
    assert form.company == "Acmes"
    assert form.urgency == "normal"
    assert form.powerUps is None


def test_contact_form_rejects_bad_input():
    for overrides in (
        {"name": "A"},
        {"name": "Ana123"},
        {"email": "nope"},
        {"message": "curta"},
        {"urgency": "yesterday"},
        {"gameMode": "solo"},
        {"powerUps": ["x" * 51]},
    ):
        with pytest.raises(ValidationError):
            parse_model(ContactForm, _contact(**overrides))


def test_parse_model_reports_field_details():
    with pytest.raises(ValidationError) as exc_info:
        parse_model(ContactForm, {"name": "Ana"}, "Dados inválidos")
    err = exc_info.value
    assert err.message == "Dados inválidos"
    fields = {d["field"] for d in err.context["details"]}
    assert {"email", "message"} <= fields


def test_parse_model_treats_none_as_empty():
    with pytest.raises(ValidationError):
        parse_model(ContactForm, None)


def _proposal(**overrides):
    data = {
        "customerName": "Ana Souza",
        "customerEmail": " Ana@Example.com ",
        "projectType": "E-commerce",
        "projectDescription": "Loja virtual completa com integrações",
        "budgetRange": "R$ 10k - 20k",
        "estimatedValue": 15000,
        "timeline": "60 dias",
        "services": ["design", "desenvolvimento"],
    }
    data.update(overrides)
    return data


def test_proposal_model():
    proposal = ProposalIn.model_validate(_proposal())
    assert proposal.customerEmail == "ana@example.com"
    assert proposal.powerUps == []

    for overrides in ({"services": []}, {"estimatedValue": 0}, {"customerEmail": "x"}, {"projectDescription": "curta"}):
        with pytest.raises(ValidationError):
            parse_model(ProposalIn, _proposal(**overrides))


def test_approval_decision_model():
    assert ApprovalDecisionIn.model_validate({"action": "approve"}).feedback is None
    with pytest.raises(ValidationError):
        parse_model(ApprovalDecisionIn, {"action": "maybe"})
