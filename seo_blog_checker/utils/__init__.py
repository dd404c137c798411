"""
Utility functions for the SEO Blog Checker.
"""

import re

# ---------------------------------------------------------------------------
# Field alias mapping: common AI-generated key names → canonical snake_case
# field names expected by the ScoredEvaluation schema.
#
# After converting raw AI keys to snake_case we apply these aliases so that,
# e.g., a model that returns "AI_READY" (→ "ai_ready") is mapped to the
# canonical "ai_optimization_score" field name.
# ---------------------------------------------------------------------------
FIELD_ALIASES: dict = {
    # eeat_score
    "eeat": "eeat_score",
    "e_e_a_t": "eeat_score",
    "e_e_a_t_score": "eeat_score",
    "eeat_evaluation": "eeat_score",
    # technical_score
    "technical": "technical_score",
    "technical_seo": "technical_score",
    "technical_seo_score": "technical_score",
    # relevance_score
    "relevance": "relevance_score",
    "search_relevance": "relevance_score",
    # text_quality_score
    "quality": "text_quality_score",
    "text_quality": "text_quality_score",
    "content_quality": "text_quality_score",
    "content_quality_score": "text_quality_score",
    # ai_optimization_score
    "ai_ready": "ai_optimization_score",
    "ai_optimization": "ai_optimization_score",
    "ai_optimisation": "ai_optimization_score",
    "ai_optimisation_score": "ai_optimization_score",
    "ai_readiness": "ai_optimization_score",
    # freshness_score
    "freshness": "freshness_score",
    "content_freshness": "freshness_score",
    # top-level fields
    "overall": "overall_score",
    "total_score": "overall_score",
    "recommendation": "optimization_recommendation",
    "priority_actions": "priority_recommendations",
    "top_recommendations": "priority_recommendations",
    "executive_summary": "summary",
}


def to_snake_case(key) -> str:
    # Step 1 – insert underscore before a run of capitals followed by a
    #           lower-case letter so we split "ABCDef" → "ABC_Def"
    s1 = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', str(key))
    # Step 2 – insert underscore between a lower-case/digit and an
    #           upper-case letter so "camelCase" → "camel_Case"
    s2 = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', s1)
    return re.sub(r'[\s\-]+', '_', s2.strip()).lower()


def normalize_dict_keys(data: dict) -> dict:
    """
    Normalize dictionary keys to snake_case, then apply :data:`FIELD_ALIASES`
    to map common AI-generated key names to their canonical field names.

    Examples:
        'EEAT'               → 'eeat_score'        (via alias map)
        'textQuality'        → 'text_quality_score' (via alias map)
        'AI_READY'           → 'ai_optimization_score'
        'overallScore'       → 'overall_score'
        'freshness_score'    → 'freshness_score'   (unchanged)

    Keys that already exist in canonical form win over aliased duplicates.
    Returns the input unchanged if it is not a dict.
    """
    if not isinstance(data, dict):
        return data

    normalized = {}
    for key, value in data.items():
        snake_key = to_snake_case(key)
        canonical_key = FIELD_ALIASES.get(snake_key, snake_key)
        if canonical_key in normalized and snake_key != canonical_key:
            continue
        normalized[canonical_key] = value

    return normalized
