"""Initial vocabulary contents, loaded as version 1 of each taxonomy field.

Closed fields (industry, business_model) are curated here; open fields start
from a seed list and grow as companies are tagged.
"""

from __future__ import annotations

from typing import Dict, Tuple

INDUSTRY_TAGS: Tuple[str, ...] = (
    # Technology & software
    "fintech", "edtech", "healthtech", "proptech", "insurtech", "legaltech",
    "hrtech", "martech", "adtech", "cleantech", "foodtech", "agtech", "regtech",
    "cybersecurity", "data_analytics", "cloud", "mobile", "gaming", "ar_vr",
    "iot", "robotics", "autonomous_vehicles", "hardware", "ev_tech",
    "vertical_saas", "agentic_ai", "deeptech",
    # Industries
    "e_commerce", "retail", "grocery_retail", "social_commerce",
    "fashion_beauty", "cpg", "food_beverage", "fitness", "wellness",
    "mental_health", "telemedicine", "biotech", "pharma", "medical_devices",
    "diagnostics", "digital_health", "consumer_goods", "productivity",
    "communication", "media_entertainment", "sports", "travel", "hospitality",
    "food_delivery", "logistics", "supply_chain", "transportation",
    "real_estate", "construction", "manufacturing", "energy",
    "greentech_sustainability", "circular_economy", "impact", "non_profit",
    "government", "public_sector", "defense", "space", "agriculture",
    "farming", "pets", "parenting", "seniors", "disability", "accessibility",
    "diversity", "inclusion", "gig_economy", "freelance", "remote_work",
    "future_of_work",
    # Target markets
    "smb", "enterprise", "consumer_tech", "prosumer", "developer", "creator",
    "influencer", "small_business", "solopreneur", "freelancer",
    "remote_worker", "genz", "millennials", "parents", "students",
    "professionals", "healthcare_providers", "financial_advisors",
)

BUSINESS_MODEL_TAGS: Tuple[str, ...] = (
    # Revenue models
    "subscription", "saas", "freemium", "transaction_fee", "advertising",
    "sponsored_content", "affiliate", "licensing", "white_label", "franchise",
    "one_time_purchase", "pay_per_use",
    # Business types
    "marketplace", "social_network", "two_sided_marketplace",
    "multi_sided_platform", "aggregator", "peer_to_peer", "p2p",
    "live_commerce", "group_buying", "subscription_commerce",
    "direct_to_consumer", "d2c", "b2b", "b2c", "b2b2c",
    # Data
    "data_monetization",
)

KEYWORDS: Tuple[str, ...] = (
    # Growth strategies
    "product_market_fit", "founder_market_fit", "minimum_viable_product",
    "mvp", "pivot", "bootstrapped", "viral_growth", "flywheel_effect",
    "lean_startup", "network_effects", "product_led_growth",
    "sales_led_growth", "community_led_growth", "customer_acquisition_cost",
    "lifetime_value", "churn_rate",
    # Technology & AI
    "ai_powered", "machine_learning", "deep_learning",
    "natural_language_processing", "nlp", "computer_vision", "generative_ai",
    "agentic_ai", "blockchain_based", "cloud_native", "edge_computing",
    "api_first", "no_code", "low_code", "open_source",
    "proprietary_technology", "patent_pending", "scalable_infrastructure",
    # Data & analytics
    "data_play", "predictive_analytics", "big_data", "personalization",
    "recommendation_engine", "user_generated_content", "content_moderation",
    "search_optimization",
    # Delivery & operations
    "mobile_app", "web_based", "cross_platform", "omnichannel", "white_glove",
    "self_service", "managed_service", "do_it_yourself", "on_demand",
    "subscription_based", "freemium_model", "pay_per_use",
    "usage_based_pricing",
    # Manufacturing & physical
    "additive_manufacturing", "supply_chain_optimization",
    "inventory_management", "logistics", "last_mile_delivery", "cold_chain",
    "quality_assurance", "regulatory_compliance",
    # User experience
    "intuitive_interface", "single_sign_on", "multi_tenant", "white_label",
    "customizable", "configurable", "plug_and_play", "turnkey_solution",
)

DEFAULT_VOCABULARIES: Dict[str, Tuple[str, ...]] = {
    "industry": INDUSTRY_TAGS,
    "business_model": BUSINESS_MODEL_TAGS,
    "keyword": KEYWORDS,
    # Co-investors are entered free-form; nothing to seed.
    "co_investor": (),
}
