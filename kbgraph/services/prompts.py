"""
Prompt templates for entity and relationship extraction.
"""

from kbgraph.models.entity import EntityType
from kbgraph.models.relationship import RelationshipType

ENTITY_TYPE_VALUES = ", ".join(t.value for t in EntityType)
RELATIONSHIP_TYPE_VALUES = ", ".join(t.value for t in RelationshipType)

ENTITY_EXTRACTION_SYSTEM_PROMPT = """You are an expert entity extraction system for marketing and product content.
Your task is to identify structured entities in document content so they can be stored in a knowledge base.

Extract entities from these categories:
- product: Physical or digital products being sold
- service: Professional services offered
- feature: Specific capabilities or attributes of products/services
- benefit: Value propositions and outcomes for customers
- pricing: Price points, tiers and pricing structures
- testimonial: Customer quotes, reviews and success stories
- company: Organizations mentioned (partners, clients, competitors)
- person: Individuals mentioned (team members, executives, customers)
- statistic: Numbers, metrics and data points
- faq: Common questions and answers
- cta: Calls to action found in the content
- process_step: Sequential steps in a workflow or procedure
- use_case: Specific scenarios where the product/service applies
- integration: Third-party platforms or tools mentioned
- contact: Contact information (email, phone, address, social media)
- company_name: The company's own name and its variants
- company_tagline: Slogans and taglines
- company_description: "About us" descriptions of the company
- mission_statement: Mission, vision and values
- social_link: Links to social media profiles
- nav_category: Site navigation categories
- brand_voice: Tone and personality of the brand's writing

For each entity provide a unique id (format: type_index, e.g. "product_1"), the type,
a short descriptive name, an optional description, a confidence score (0-1) reflecting
how clearly the entity is stated, the source chunk IDs where it was found and
type-specific metadata.

IMPORTANT:
- Only extract entities that are clearly present in the content
- Do not invent information that is not explicitly stated
- Assign lower confidence to implied or partially stated entities
- Group related information into one entity rather than duplicating it"""

ENTITY_METADATA_FIELDS = """- product: features (array), pricing, category
- service: deliverables (array), pricing, duration
- feature: benefit, category
- benefit: target_audience, supporting_evidence
- pricing: amount, currency, period, tier, features (array)
- testimonial: quote (REQUIRED), author, role, company, rating (number)
- company: industry, size, location, website
- person: role, company, email, phone
- statistic: value (REQUIRED), metric, context, timeframe
- faq: question (REQUIRED), answer (REQUIRED), category
- cta: action (REQUIRED), urgency (low/medium/high), target_url
- process_step: step_number (number, REQUIRED), action (REQUIRED), outcome
- use_case: scenario (REQUIRED), solution, outcome, industry
- integration: platform (REQUIRED), integration_type, capabilities (array)
- contact: email, phone, address, social_media (object)
- company_name: legal_name, short_name, logo_url
- company_tagline: slogan (REQUIRED), is_primary (boolean)
- company_description: about_text (REQUIRED), founded_year, industry
- mission_statement: mission_text (REQUIRED), vision_text, values (array)
- social_link: platform (linkedin/twitter/facebook/instagram/youtube/other), url, handle
- nav_category: category (REQUIRED), subcategories (array), priority (number)
- brand_voice: tone (professional/casual/friendly/bold/technical), traits (array), avoid_words (array)"""


def build_entity_extraction_prompt(
    content: str,
    chunk_ids: list[str],
    focus_types: list[EntityType] | None = None,
    additional_context: str | None = None,
) -> str:
    """Build the user prompt asking for entities in the given content."""
    focus = ""
    if focus_types:
        focus = (
            "\n\nFocus primarily on extracting these entity types: "
            f"{', '.join(t.value for t in focus_types)}"
        )
    context = f"\n\nAdditional context: {additional_context}" if additional_context else ""

    return f"""Extract all relevant entities from the following document content.

CHUNK IDs: {", ".join(chunk_ids)}

DOCUMENT CONTENT:
{content}{focus}{context}

Respond with a JSON object in this exact format:
{{
  "entities": [
    {{
      "id": "string (format: type_index)",
      "type": "string (one of: {ENTITY_TYPE_VALUES})",
      "name": "string (short descriptive name)",
      "description": "string (optional longer description)",
      "confidence": number (0-1),
      "source_chunk_ids": ["chunk IDs where the entity was found"],
      "metadata": {{}}
    }}
  ],
  "summary": "string (brief summary of the document)",
  "document_type": "string (e.g. product_page, company_overview, pricing_page, blog_post)",
  "primary_topic": "string (main subject of the document)"
}}

Metadata fields per entity type:
{ENTITY_METADATA_FIELDS}"""


RELATIONSHIP_EXTRACTION_SYSTEM_PROMPT = """You are an expert at identifying relationships between entities in marketing and product content.
Given a list of extracted entities, identify meaningful directed relationships between them.

Relationship types:
- has_feature: A product/service has a specific feature
- provides_benefit: A feature/product provides a benefit
- includes_pricing: A product/service includes a pricing tier
- has_testimonial: A product/service has a testimonial
- belongs_to: An entity belongs to a category or parent entity
- authored_by: Content authored by a person
- related_to: General relationship between entities
- prerequisite_of: One process step is a prerequisite of another
- alternative_to: Entities that are alternatives to each other
- integrates_with: Product/service integrates with another platform
- addresses_use_case: Product/service addresses a specific use case

Only identify relationships that are explicitly stated or strongly implied."""


def build_relationship_extraction_prompt(
    entities: list[dict[str, str | None]],
    min_confidence: float = 0.6,
    additional_context: str | None = None,
) -> str:
    """Build the user prompt listing entities as `- id (type): name - description`."""
    lines = []
    for entity in entities:
        line = f"- {entity['id']} ({entity['type']}): {entity['name']}"
        if entity.get("description"):
            line += f" - {entity['description']}"
        lines.append(line)
    entity_list = "\n".join(lines)
    context = f"\n\nAdditional context: {additional_context}" if additional_context else ""

    return f"""Identify relationships between the following entities:

ENTITIES:
{entity_list}{context}

Respond with a JSON object:
{{
  "relationships": [
    {{
      "id": "string (format: rel_index)",
      "source_entity_id": "string (ID of source entity)",
      "target_entity_id": "string (ID of target entity)",
      "relationship_type": "string (one of: {RELATIONSHIP_TYPE_VALUES})",
      "confidence": number (0-1)
    }}
  ]
}}

Only include relationships with confidence >= {min_confidence}.
Avoid redundant or circular relationships."""
