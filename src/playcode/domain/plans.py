"""
Subscription plans, add-ons and power-ups, with pricing helpers.

All amounts are in cents (BRL).
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from playcode.core.errors import NotFoundError
from playcode.domain.leads import round_half_up


def _f(id: str, name: str, included: bool = True, limit: Optional[int] = None) -> Dict[str, Any]:
    feature: Dict[str, Any] = {"id": id, "name": name, "included": included}
    if limit is not None:
        feature["limit"] = limit
    return feature


GAME_PLANS: List[Dict[str, Any]] = [
    {
        "id": "starter-pack",
        "name": "Starter Pack",
        "subtitle": "ACELERE SUA ENTRADA",
        "description": "Perfeito para startups e pequenos negócios que querem resultados rápidos",
        "rarity": "rare",
        "popular": False,
        "enterprise": False,
        "setup_fee": 79700,
        "monthly_price": 19700,
        "annual_discount": 20,
        "max_projects": 3,
        "support_level": "basic",
        "sla_uptime": "99.0%",
        "custom_addons": False,
        "features": [
            _f("websites", "Landing Pages & Sites", limit=3),
            _f("hosting", "Hospedagem Profissional"),
            _f("ssl", "Certificado SSL"),
            _f("analytics", "Analytics Básico"),
            _f("support", "Suporte por Email"),
            _f("updates", "Atualizações Mensais"),
            _f("seo", "SEO Básico"),
            _f("forms", "Formulários de Contato"),
            _f("mobile", "Design Responsivo"),
            _f("backup", "Backup Semanal"),
            _f("ecommerce", "E-commerce Avançado", False),
            _f("api", "APIs Customizadas", False),
            _f("integrations", "Integrações Premium", False),
            _f("priority_support", "Suporte Prioritário", False),
            _f("custom_dev", "Desenvolvimento Custom", False),
        ],
    },
    {
        "id": "business-one",
        "name": "Business One",
        "subtitle": "EVOLUÇÃO INTELIGENTE",
        "description": "Para pequenas empresas que buscam crescimento sustentável com recursos premium",
        "rarity": "rare",
        "popular": False,
        "enterprise": False,
        "setup_fee": 149700,
        "monthly_price": 39700,
        "annual_discount": 22,
        "max_projects": 5,
        "support_level": "priority",
        "sla_uptime": "99.2%",
        "custom_addons": True,
        "features": [
            _f("websites", "Website Profissional", limit=5),
            _f("hosting", "Hospedagem Premium"),
            _f("ssl", "Certificado SSL"),
            _f("analytics", "Analytics Avançado"),
            _f("support", "Suporte Profissional"),
            _f("updates", "Atualizações Semanais"),
            _f("seo", "SEO Otimizado"),
            _f("forms", "Formulários Avançados"),
            _f("mobile", "Design Responsivo"),
            _f("backup", "Backup Automático"),
            _f("social", "Integração Redes Sociais"),
            _f("chat", "Suporte Chat Online"),
            _f("ecommerce", "E-commerce Básico", False),
            _f("api", "APIs Customizadas", False),
            _f("integrations", "Integrações Premium", False),
            _f("priority_support", "Suporte Prioritário", False),
            _f("custom_dev", "Desenvolvimento Custom", False),
        ],
    },
    {
        "id": "pro-guild",
        "name": "Pro Guild",
        "subtitle": "MÁXIMA PERFORMANCE",
        "description": "Para empresas que exigem soluções robustas e performance superior",
        "rarity": "epic",
        "popular": True,
        "enterprise": False,
        "setup_fee": 249700,
        "monthly_price": 49700,
        "annual_discount": 25,
        "max_projects": 10,
        "support_level": "priority",
        "sla_uptime": "99.5%",
        "custom_addons": True,
        "features": [
            _f("websites", "Landing Pages & Sites", limit=10),
            _f("hosting", "Hospedagem Profissional"),
            _f("ssl", "Certificado SSL"),
            _f("analytics", "Analytics Avançado"),
            _f("support", "Suporte Prioritário 24/7"),
            _f("updates", "Atualizações Semanais"),
            _f("seo", "SEO Avançado"),
            _f("forms", "Formulários Avançados"),
            _f("mobile", "Design Responsivo"),
            _f("backup", "Backup Diário"),
            _f("ecommerce", "E-commerce Completo"),
            _f("api", "APIs Customizadas", limit=5),
            _f("integrations", "Integrações Premium"),
            _f("priority_support", "Suporte Prioritário"),
            _f("custom_dev", "20h Dev Custom/mês", limit=20),
            _f("performance", "Otimização Performance"),
            _f("security", "Segurança Avançada"),
            _f("monitoring", "Monitoramento 24/7"),
            _f("enterprise_support", "Suporte Dedicado", False),
            _f("unlimited_dev", "Dev Ilimitado", False),
        ],
    },
    {
        "id": "enterprise-legend",
        "name": "Enterprise Legend",
        "subtitle": "SOLUÇÃO COMPLETA",
        "description": "Poder máximo para grandes corporações e projetos ambiciosos",
        "rarity": "legendary",
        "popular": False,
        "enterprise": True,
        "setup_fee": 999700,
        "monthly_price": 199700,
        "annual_discount": 30,
        "max_projects": -1,  # unlimited
        "support_level": "dedicated",
        "sla_uptime": "99.9%",
        "custom_addons": True,
        "features": [
            _f("websites", "Projetos Ilimitados", limit=-1),
            _f("hosting", "Infraestrutura Enterprise"),
            _f("ssl", "Certificados SSL Enterprise"),
            _f("analytics", "Analytics Enterprise"),
            _f("support", "Suporte Dedicado 24/7"),
            _f("updates", "Updates em Tempo Real"),
            _f("seo", "SEO Enterprise"),
            _f("forms", "Formulários Enterprise"),
            _f("mobile", "Apps Mobile Nativos"),
            _f("backup", "Backup em Tempo Real"),
            _f("ecommerce", "E-commerce Enterprise"),
            _f("api", "APIs Ilimitadas"),
            _f("integrations", "Integrações Ilimitadas"),
            _f("priority_support", "Gerente Dedicado"),
            _f("custom_dev", "Desenvolvimento Ilimitado"),
            _f("performance", "Performance Máxima"),
            _f("security", "Segurança Militar"),
            _f("monitoring", "Monitoramento Avançado"),
            _f("enterprise_support", "Suporte Dedicado"),
            _f("unlimited_dev", "Dev Team Dedicado"),
            _f("consulting", "Consultoria Estratégica"),
            _f("white_label", "Solução White Label"),
            _f("compliance", "Compliance Corporativo"),
        ],
    },
]

DISCOUNT_CONFIG: Dict[str, Dict[str, int]] = {
    "annual": {
        "starter": 20,
        "business": 22,
        "pro": 25,
        "enterprise": 30,
    },
    "promotional": {
        "black_friday": 40,
        "new_year": 30,
        "easter": 20,
    },
}

ADDONS: List[Dict[str, Any]] = [
    {
        "id": "extra-projects",
        "name": "Projetos Extras",
        "description": "+5 projetos adicionais",
        "price": 9700,
        "available_for": ["starter-pack", "business-one", "pro-guild"],
    },
    {
        "id": "priority-support",
        "name": "Suporte Prioritário",
        "description": "Atendimento prioritário 24/7",
        "price": 19700,
        "available_for": ["starter-pack", "business-one"],
    },
    {
        "id": "custom-development",
        "name": "Desenvolvimento Extra",
        "description": "+10 horas de desenvolvimento",
        "price": 79700,
        "available_for": ["starter-pack", "business-one", "pro-guild"],
    },
    {
        "id": "ai-integration",
        "name": "Integração IA",
        "description": "ChatGPT e ferramentas de IA",
        "price": 29700,
        "available_for": ["business-one", "pro-guild", "enterprise-legend"],
    },
    {
        "id": "mobile-app",
        "name": "App Mobile",
        "description": "Aplicativo nativo iOS/Android",
        "price": 199700,
        "available_for": ["business-one", "pro-guild", "enterprise-legend"],
    },
]

POWER_UPS: List[Dict[str, Any]] = [
    {
        "id": "chatbot-premium",
        "name": "Chatbot Premium",
        "description": "IA avançada com processamento de linguagem natural",
        "price": 150000,
        "pagseguro_id": "POWERUP_CHATBOT_PREMIUM",
    },
    {
        "id": "seo-boost",
        "name": "SEO Turbo Boost",
        "description": "Otimização avançada e campanha de conteúdo",
        "price": 200000,
        "pagseguro_id": "POWERUP_SEO_BOOST",
    },
    {
        "id": "mobile-app",
        "name": "Mobile App",
        "description": "Aplicativo nativo para iOS e Android",
        "price": 800000,
        "pagseguro_id": "POWERUP_MOBILE_APP",
    },
    {
        "id": "priority-support",
        "name": "Suporte Prioritário",
        "description": "Atendimento VIP com resposta em 1 hora",
        "price": 80000,
        "pagseguro_id": "POWERUP_PRIORITY_SUPPORT",
    },
    {
        "id": "advanced-analytics",
        "name": "Analytics Pro",
        "description": "Dashboards personalizados e relatórios avançados",
        "price": 120000,
        "pagseguro_id": "POWERUP_ANALYTICS_PRO",
    },
]


def get_plan(plan_id: str) -> Optional[Dict[str, Any]]:
    for plan in GAME_PLANS:
        if plan["id"] == plan_id:
            return copy.deepcopy(plan)
    return None


def get_power_up(power_up_id: str) -> Optional[Dict[str, Any]]:
    for power_up in POWER_UPS:
        if power_up["id"] == power_up_id:
            return dict(power_up)
    return None


def addons_for(plan_id: str) -> List[Dict[str, Any]]:
    return [copy.deepcopy(a) for a in ADDONS if plan_id in a["available_for"]]


def calculate_plan_price(plan_id: str, annual: bool = False) -> Dict[str, int]:
    plan = get_plan(plan_id)
    if plan is None:
        raise NotFoundError(f"Plano {plan_id} não encontrado", code="PLAN_NOT_FOUND")

    monthly = plan["monthly_price"]
    if not annual:
        return {"setup_fee": plan["setup_fee"], "monthly_price": monthly}

    full_year = monthly * 12
    annual_price = round_half_up(full_year * (1 - plan["annual_discount"] / 100))
    return {
        "setup_fee": plan["setup_fee"],
        "monthly_price": monthly,
        "annual_price": annual_price,
        "savings": full_year - annual_price,
    }


def apply_promo(amount: int, promo_code: Optional[str]) -> int:
    """Apply a promotional discount; unknown codes leave the amount unchanged."""
    percent = DISCOUNT_CONFIG["promotional"].get((promo_code or "").strip().lower(), 0)
    if not percent:
        return amount
    return round_half_up(amount * (1 - percent / 100))


def format_price(cents: int) -> str:
    """Format cents as BRL, e.g. 123456 -> 'R$ 1.234,56'."""
    negative = cents < 0
    reais, centavos = divmod(abs(int(cents)), 100)
    grouped = f"{reais:,}".replace(",", ".")
    text = f"R$ {grouped},{centavos:02d}"
    return f"-{text}" if negative else text


def to_gateway_plan(plan: Dict[str, Any]) -> Dict[str, Any]:
    gateway_plan: Dict[str, Any] = {
        "id": f"pagseguro_{plan['id']}",
        "name": plan["name"],
        "description": f"{plan['subtitle']} - {plan['description']}",
        "setup_fee": plan["setup_fee"],
        "monthly_amount": plan["monthly_price"],
        "currency": "BRL",
        "interval": "MONTHLY",
    }
    if plan["id"] == "starter-pack":
        gateway_plan["trial_period_days"] = 7
    return gateway_plan


def plan_with_pricing(plan: Dict[str, Any]) -> Dict[str, Any]:
    """Plan plus monthly/annual pricing and formatted prices, as served by the API."""
    monthly = calculate_plan_price(plan["id"])
    annual = calculate_plan_price(plan["id"], annual=True)
    return {
        **plan,
        "pricing": {
            "monthly": monthly,
            "annual": annual,
            "formatted": {
                "setup_fee": format_price(plan["setup_fee"]),
                "monthly_price": format_price(plan["monthly_price"]),
                "annual_price": format_price(annual["annual_price"]),
                "savings": format_price(annual["savings"]),
            },
        },
        "addons": addons_for(plan["id"]),
    }
