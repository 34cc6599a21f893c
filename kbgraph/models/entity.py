"""
Entity taxonomy for knowledge extraction.

Entities form a closed tagged union discriminated by ``type``. Every
EntityType member has exactly one model class and one builder; the module
refuses to import if a type is added without both.
"""

import math
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter


class EntityType(str, Enum):
    """Closed taxonomy of extractable entity types."""

    PRODUCT = "product"
    SERVICE = "service"
    FEATURE = "feature"
    BENEFIT = "benefit"
    PRICING = "pricing"
    TESTIMONIAL = "testimonial"
    COMPANY = "company"
    PERSON = "person"
    STATISTIC = "statistic"
    FAQ = "faq"
    CTA = "cta"
    PROCESS_STEP = "process_step"
    USE_CASE = "use_case"
    INTEGRATION = "integration"
    CONTACT = "contact"

    # Brand identity
    COMPANY_NAME = "company_name"
    COMPANY_TAGLINE = "company_tagline"
    COMPANY_DESCRIPTION = "company_description"
    MISSION_STATEMENT = "mission_statement"
    SOCIAL_LINK = "social_link"
    NAV_CATEGORY = "nav_category"
    BRAND_VOICE = "brand_voice"

    @classmethod
    def parse(cls, value: Any) -> "EntityType | None":
        """Return the member for a raw value, or None if it is not in the taxonomy."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


SocialPlatform = Literal["linkedin", "twitter", "facebook", "instagram", "youtube", "other"]
BrandTone = Literal["professional", "casual", "friendly", "bold", "technical"]
CTAUrgency = Literal["low", "medium", "high"]


class BaseEntity(BaseModel):
    """Fields shared by every entity variant."""

    id: str
    name: str
    description: str | None = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    source_chunk_ids: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ProductEntity(BaseEntity):
    type: Literal[EntityType.PRODUCT] = EntityType.PRODUCT
    features: list[str] = Field(default_factory=list)
    pricing: str | None = None
    category: str | None = None


class ServiceEntity(BaseEntity):
    type: Literal[EntityType.SERVICE] = EntityType.SERVICE
    deliverables: list[str] = Field(default_factory=list)
    pricing: str | None = None
    duration: str | None = None


class FeatureEntity(BaseEntity):
    type: Literal[EntityType.FEATURE] = EntityType.FEATURE
    benefit: str | None = None
    category: str | None = None


class BenefitEntity(BaseEntity):
    type: Literal[EntityType.BENEFIT] = EntityType.BENEFIT
    target_audience: str | None = None
    supporting_evidence: str | None = None


class PricingEntity(BaseEntity):
    type: Literal[EntityType.PRICING] = EntityType.PRICING
    amount: str | None = None
    currency: str | None = None
    period: str | None = None
    tier: str | None = None
    features: list[str] = Field(default_factory=list)


class TestimonialEntity(BaseEntity):
    __test__ = False  # keep pytest from collecting this model

    type: Literal[EntityType.TESTIMONIAL] = EntityType.TESTIMONIAL
    quote: str
    author: str | None = None
    role: str | None = None
    company: str | None = None
    rating: float | None = None


class CompanyEntity(BaseEntity):
    type: Literal[EntityType.COMPANY] = EntityType.COMPANY
    industry: str | None = None
    size: str | None = None
    location: str | None = None
    website: str | None = None


class PersonEntity(BaseEntity):
    type: Literal[EntityType.PERSON] = EntityType.PERSON
    role: str | None = None
    company: str | None = None
    email: str | None = None
    phone: str | None = None


class StatisticEntity(BaseEntity):
    type: Literal[EntityType.STATISTIC] = EntityType.STATISTIC
    value: str
    metric: str | None = None
    context: str | None = None
    timeframe: str | None = None


class FAQEntity(BaseEntity):
    type: Literal[EntityType.FAQ] = EntityType.FAQ
    question: str
    answer: str
    category: str | None = None


class CTAEntity(BaseEntity):
    type: Literal[EntityType.CTA] = EntityType.CTA
    action: str
    urgency: CTAUrgency | None = None
    target_url: str | None = None


class ProcessStepEntity(BaseEntity):
    type: Literal[EntityType.PROCESS_STEP] = EntityType.PROCESS_STEP
    step_number: int = 1
    action: str
    outcome: str | None = None


class UseCaseEntity(BaseEntity):
    type: Literal[EntityType.USE_CASE] = EntityType.USE_CASE
    scenario: str
    solution: str | None = None
    outcome: str | None = None
    industry: str | None = None


class IntegrationEntity(BaseEntity):
    type: Literal[EntityType.INTEGRATION] = EntityType.INTEGRATION
    platform: str
    integration_type: str | None = None
    capabilities: list[str] = Field(default_factory=list)


class ContactEntity(BaseEntity):
    type: Literal[EntityType.CONTACT] = EntityType.CONTACT
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    social_media: dict[str, str] = Field(default_factory=dict)


class CompanyNameEntity(BaseEntity):
    type: Literal[EntityType.COMPANY_NAME] = EntityType.COMPANY_NAME
    legal_name: str | None = None
    short_name: str | None = None
    logo_url: str | None = None


class CompanyTaglineEntity(BaseEntity):
    type: Literal[EntityType.COMPANY_TAGLINE] = EntityType.COMPANY_TAGLINE
    slogan: str
    is_primary: bool = False


class CompanyDescriptionEntity(BaseEntity):
    type: Literal[EntityType.COMPANY_DESCRIPTION] = EntityType.COMPANY_DESCRIPTION
    about_text: str
    founded_year: str | None = None
    industry: str | None = None


class MissionStatementEntity(BaseEntity):
    type: Literal[EntityType.MISSION_STATEMENT] = EntityType.MISSION_STATEMENT
    mission_text: str
    vision_text: str | None = None
    values: list[str] = Field(default_factory=list)


class SocialLinkEntity(BaseEntity):
    type: Literal[EntityType.SOCIAL_LINK] = EntityType.SOCIAL_LINK
    platform: SocialPlatform = "other"
    url: str = ""
    handle: str | None = None


class NavCategoryEntity(BaseEntity):
    type: Literal[EntityType.NAV_CATEGORY] = EntityType.NAV_CATEGORY
    category: str
    subcategories: list[str] = Field(default_factory=list)
    priority: int | None = None


class BrandVoiceEntity(BaseEntity):
    type: Literal[EntityType.BRAND_VOICE] = EntityType.BRAND_VOICE
    tone: BrandTone = "professional"
    traits: list[str] = Field(default_factory=list)
    avoid_words: list[str] = Field(default_factory=list)


Entity = Annotated[
    ProductEntity
    | ServiceEntity
    | FeatureEntity
    | BenefitEntity
    | PricingEntity
    | TestimonialEntity
    | CompanyEntity
    | PersonEntity
    | StatisticEntity
    | FAQEntity
    | CTAEntity
    | ProcessStepEntity
    | UseCaseEntity
    | IntegrationEntity
    | ContactEntity
    | CompanyNameEntity
    | CompanyTaglineEntity
    | CompanyDescriptionEntity
    | MissionStatementEntity
    | SocialLinkEntity
    | NavCategoryEntity
    | BrandVoiceEntity,
    Field(discriminator="type"),
]

entity_adapter: TypeAdapter[Entity] = TypeAdapter(Entity)


# ═══════════════════════════════════════════════════════════
# LLM OUTPUT
# ═══════════════════════════════════════════════════════════


class RawEntityCandidate(BaseModel):
    """Entity as proposed by the LLM, before taxonomy validation."""

    model_config = {"extra": "ignore"}

    id: str | None = Field(None, description="Extraction-local ID used by relationships")
    type: str = Field(..., description="Entity type; must be a member of EntityType")
    name: str = Field(..., description="Short canonical name")
    description: str | None = None
    confidence: float = Field(0.5, description="Confidence (0-1)")
    source_chunk_ids: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


# ═══════════════════════════════════════════════════════════
# CONSTRUCTION
# ═══════════════════════════════════════════════════════════


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, bool | int | float):
        return str(value)
    return None


def _text_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list | tuple):
        return [str(item) for item in value if item is not None and str(item).strip()]
    return []


def _text_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items() if v is not None}


def _number(value: Any) -> float | None:
    # Only finite numbers; NaN and infinities read as missing
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _integer(value: Any) -> int | None:
    number = _number(value)
    return int(number) if number is not None else None


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _choice(value: Any, allowed: tuple[str, ...], default: str | None) -> str | None:
    text = _text(value)
    if text and text.lower() in allowed:
        return text.lower()
    return default


_SOCIAL_PLATFORMS = ("linkedin", "twitter", "facebook", "instagram", "youtube", "other")
_BRAND_TONES = ("professional", "casual", "friendly", "bold", "technical")
_URGENCY_LEVELS = ("low", "medium", "high")

# (base fields, candidate metadata) -> entity
EntityBuilder = Callable[[dict[str, Any], dict[str, Any]], BaseEntity]


def _build_product(base: dict[str, Any], meta: dict[str, Any]) -> ProductEntity:
    return ProductEntity(
        **base,
        features=_text_list(meta.get("features")),
        pricing=_text(meta.get("pricing")),
        category=_text(meta.get("category")),
    )


def _build_service(base: dict[str, Any], meta: dict[str, Any]) -> ServiceEntity:
    return ServiceEntity(
        **base,
        deliverables=_text_list(meta.get("deliverables")),
        pricing=_text(meta.get("pricing")),
        duration=_text(meta.get("duration")),
    )


def _build_feature(base: dict[str, Any], meta: dict[str, Any]) -> FeatureEntity:
    return FeatureEntity(
        **base, benefit=_text(meta.get("benefit")), category=_text(meta.get("category"))
    )


def _build_benefit(base: dict[str, Any], meta: dict[str, Any]) -> BenefitEntity:
    return BenefitEntity(
        **base,
        target_audience=_text(meta.get("target_audience")),
        supporting_evidence=_text(meta.get("supporting_evidence")),
    )


def _build_pricing(base: dict[str, Any], meta: dict[str, Any]) -> PricingEntity:
    return PricingEntity(
        **base,
        amount=_text(meta.get("amount")),
        currency=_text(meta.get("currency")),
        period=_text(meta.get("period")),
        tier=_text(meta.get("tier")),
        features=_text_list(meta.get("features")),
    )


def _build_testimonial(base: dict[str, Any], meta: dict[str, Any]) -> TestimonialEntity:
    return TestimonialEntity(
        **base,
        quote=_text(meta.get("quote")) or base.get("description") or "",
        author=_text(meta.get("author")),
        role=_text(meta.get("role")),
        company=_text(meta.get("company")),
        rating=_number(meta.get("rating")),
    )


def _build_company(base: dict[str, Any], meta: dict[str, Any]) -> CompanyEntity:
    return CompanyEntity(
        **base,
        industry=_text(meta.get("industry")),
        size=_text(meta.get("size")),
        location=_text(meta.get("location")),
        website=_text(meta.get("website")),
    )


def _build_person(base: dict[str, Any], meta: dict[str, Any]) -> PersonEntity:
    return PersonEntity(
        **base,
        role=_text(meta.get("role")),
        company=_text(meta.get("company")),
        email=_text(meta.get("email")),
        phone=_text(meta.get("phone")),
    )


def _build_statistic(base: dict[str, Any], meta: dict[str, Any]) -> StatisticEntity:
    return StatisticEntity(
        **base,
        value=_text(meta.get("value")) or base["name"],
        metric=_text(meta.get("metric")),
        context=_text(meta.get("context")),
        timeframe=_text(meta.get("timeframe")),
    )


def _build_faq(base: dict[str, Any], meta: dict[str, Any]) -> FAQEntity:
    return FAQEntity(
        **base,
        question=_text(meta.get("question")) or base["name"],
        answer=_text(meta.get("answer")) or base.get("description") or "",
        category=_text(meta.get("category")),
    )


def _build_cta(base: dict[str, Any], meta: dict[str, Any]) -> CTAEntity:
    return CTAEntity(
        **base,
        action=_text(meta.get("action")) or base["name"],
        urgency=_choice(meta.get("urgency"), _URGENCY_LEVELS, None),
        target_url=_text(meta.get("target_url")),
    )


def _build_process_step(base: dict[str, Any], meta: dict[str, Any]) -> ProcessStepEntity:
    step_number = _integer(meta.get("step_number"))
    return ProcessStepEntity(
        **base,
        step_number=step_number if step_number is not None else 1,
        action=_text(meta.get("action")) or base["name"],
        outcome=_text(meta.get("outcome")),
    )


def _build_use_case(base: dict[str, Any], meta: dict[str, Any]) -> UseCaseEntity:
    return UseCaseEntity(
        **base,
        scenario=_text(meta.get("scenario")) or base.get("description") or "",
        solution=_text(meta.get("solution")),
        outcome=_text(meta.get("outcome")),
        industry=_text(meta.get("industry")),
    )


def _build_integration(base: dict[str, Any], meta: dict[str, Any]) -> IntegrationEntity:
    return IntegrationEntity(
        **base,
        platform=_text(meta.get("platform")) or base["name"],
        integration_type=_text(meta.get("integration_type")),
        capabilities=_text_list(meta.get("capabilities")),
    )


def _build_contact(base: dict[str, Any], meta: dict[str, Any]) -> ContactEntity:
    return ContactEntity(
        **base,
        email=_text(meta.get("email")),
        phone=_text(meta.get("phone")),
        address=_text(meta.get("address")),
        social_media=_text_map(meta.get("social_media")),
    )


def _build_company_name(base: dict[str, Any], meta: dict[str, Any]) -> CompanyNameEntity:
    return CompanyNameEntity(
        **base,
        legal_name=_text(meta.get("legal_name")),
        short_name=_text(meta.get("short_name")),
        logo_url=_text(meta.get("logo_url")),
    )


def _build_company_tagline(base: dict[str, Any], meta: dict[str, Any]) -> CompanyTaglineEntity:
    return CompanyTaglineEntity(
        **base,
        slogan=_text(meta.get("slogan")) or base["name"],
        is_primary=_flag(meta.get("is_primary", False)),
    )


def _build_company_description(
    base: dict[str, Any], meta: dict[str, Any]
) -> CompanyDescriptionEntity:
    return CompanyDescriptionEntity(
        **base,
        about_text=_text(meta.get("about_text")) or base.get("description") or "",
        founded_year=_text(meta.get("founded_year")),
        industry=_text(meta.get("industry")),
    )


def _build_mission_statement(
    base: dict[str, Any], meta: dict[str, Any]
) -> MissionStatementEntity:
    return MissionStatementEntity(
        **base,
        mission_text=_text(meta.get("mission_text")) or base.get("description") or "",
        vision_text=_text(meta.get("vision_text")),
        values=_text_list(meta.get("values")),
    )


def _build_social_link(base: dict[str, Any], meta: dict[str, Any]) -> SocialLinkEntity:
    return SocialLinkEntity(
        **base,
        platform=_choice(meta.get("platform"), _SOCIAL_PLATFORMS, "other"),
        url=_text(meta.get("url")) or "",
        handle=_text(meta.get("handle")),
    )


def _build_nav_category(base: dict[str, Any], meta: dict[str, Any]) -> NavCategoryEntity:
    return NavCategoryEntity(
        **base,
        category=_text(meta.get("category")) or base["name"],
        subcategories=_text_list(meta.get("subcategories")),
        priority=_integer(meta.get("priority")),
    )


def _build_brand_voice(base: dict[str, Any], meta: dict[str, Any]) -> BrandVoiceEntity:
    return BrandVoiceEntity(
        **base,
        tone=_choice(meta.get("tone"), _BRAND_TONES, "professional"),
        traits=_text_list(meta.get("traits")),
        avoid_words=_text_list(meta.get("avoid_words")),
    )


ENTITY_BUILDERS: dict[EntityType, EntityBuilder] = {
    EntityType.PRODUCT: _build_product,
    EntityType.SERVICE: _build_service,
    EntityType.FEATURE: _build_feature,
    EntityType.BENEFIT: _build_benefit,
    EntityType.PRICING: _build_pricing,
    EntityType.TESTIMONIAL: _build_testimonial,
    EntityType.COMPANY: _build_company,
    EntityType.PERSON: _build_person,
    EntityType.STATISTIC: _build_statistic,
    EntityType.FAQ: _build_faq,
    EntityType.CTA: _build_cta,
    EntityType.PROCESS_STEP: _build_process_step,
    EntityType.USE_CASE: _build_use_case,
    EntityType.INTEGRATION: _build_integration,
    EntityType.CONTACT: _build_contact,
    EntityType.COMPANY_NAME: _build_company_name,
    EntityType.COMPANY_TAGLINE: _build_company_tagline,
    EntityType.COMPANY_DESCRIPTION: _build_company_description,
    EntityType.MISSION_STATEMENT: _build_mission_statement,
    EntityType.SOCIAL_LINK: _build_social_link,
    EntityType.NAV_CATEGORY: _build_nav_category,
    EntityType.BRAND_VOICE: _build_brand_voice,
}

_missing_builders = set(EntityType) - set(ENTITY_BUILDERS)
if _missing_builders:
    raise RuntimeError(f"Entity types without a builder: {sorted(t.value for t in _missing_builders)}")


def build_entity(
    entity_type: EntityType,
    entity_id: str,
    candidate: RawEntityCandidate,
    source_chunk_ids: list[str] | None = None,
) -> BaseEntity:
    """
    Construct the typed entity variant for a validated candidate.

    Variant-required fields missing from the candidate metadata fall back to
    the candidate's name or description (see the per-type builders).

    Args:
        entity_type: Validated taxonomy member
        entity_id: ID to assign
        candidate: Raw LLM candidate
        source_chunk_ids: Chunk IDs to attach (defaults to the candidate's own)

    Returns:
        Entity instance of the matching variant
    """
    base = {
        "id": entity_id,
        "name": candidate.name.strip(),
        "description": _text(candidate.description),
        "confidence": min(max(candidate.confidence, 0.0), 1.0),
        "source_chunk_ids": list(
            dict.fromkeys(source_chunk_ids if source_chunk_ids is not None else candidate.source_chunk_ids)
        ),
        "metadata": dict(candidate.metadata),
    }
    return ENTITY_BUILDERS[entity_type](base, candidate.metadata)


# ═══════════════════════════════════════════════════════════
# RESULTS & PERSISTENCE
# ═══════════════════════════════════════════════════════════


class EntityExtractionOptions(BaseModel):
    """Options for entity extraction."""

    min_confidence: float = Field(0.5, ge=0.0, le=1.0)
    max_entities: int = Field(100, gt=0)
    focus_types: list[EntityType] | None = None
    additional_context: str | None = None
    chunk_batch_size: int = Field(5, gt=0)


class EntityExtractionResult(BaseModel):
    """Entities extracted from one piece of content (or a whole document)."""

    entities: list[Entity] = Field(default_factory=list)
    summary: str | None = None
    document_type: str | None = None
    primary_topic: str | None = None
    tokens_used: int = 0
    processing_time: float = Field(0.0, description="Milliseconds")
    skipped_low_confidence: int = 0
    skipped_invalid: int = 0


class EntityStats(BaseModel):
    """Summary statistics over a list of entities."""

    total: int
    by_type: dict[str, int]
    average_confidence: float
    high_confidence: int = Field(0, description="Entities with confidence >= 0.8")
    low_confidence: int = Field(0, description="Entities with confidence < 0.6")


class StoredEntity(BaseModel):
    """Entity as persisted in a workspace."""

    id: str
    workspace_id: str
    knowledge_item_id: str | None = None
    entity_type: EntityType
    name: str
    description: str | None = None
    confidence: float
    source_chunk_ids: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    attributes: dict[str, Any] = Field(
        default_factory=dict, description="Variant-specific fields of the typed entity"
    )
    created_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_entity(
        cls,
        entity: BaseEntity,
        workspace_id: str,
        knowledge_item_id: str | None = None,
        entity_id: str | None = None,
    ) -> "StoredEntity":
        common = set(BaseEntity.model_fields) | {"type"}
        attributes = entity.model_dump(mode="json", exclude=common)
        return cls(
            id=entity_id or entity.id,
            workspace_id=workspace_id,
            knowledge_item_id=knowledge_item_id,
            entity_type=entity.type,
            name=entity.name,
            description=entity.description,
            confidence=entity.confidence,
            source_chunk_ids=list(entity.source_chunk_ids),
            metadata=dict(entity.metadata),
            attributes=attributes,
        )

    def to_entity(self) -> BaseEntity:
        """Rebuild the typed entity variant."""
        return entity_adapter.validate_python(
            {
                **self.attributes,
                "id": self.id,
                "type": self.entity_type,
                "name": self.name,
                "description": self.description,
                "confidence": self.confidence,
                "source_chunk_ids": self.source_chunk_ids,
                "metadata": self.metadata,
            }
        )
