"""
Text enrichment for product embeddings
Expands structured product fields into a single domain-aware text blob
and splits long descriptions into sentence-aligned chunks
"""

import re
from typing import List, Dict, Any, Optional, Set, Iterable


# Health/agricultural vocabularies scanned by extract_domain_keywords
DOMAIN_KEYWORDS: Dict[str, List[str]] = {
    "nutrients": [
        'vitamin', 'mineral', 'protein', 'fiber', 'calcium', 'iron', 'potassium',
        'magnesium', 'zinc', 'antioxidants', 'omega-3', 'vitamin c', 'vitamin d',
        'folate', 'beta-carotene', 'flavonoids', 'polyphenols'
    ],
    "benefits": [
        'anti-inflammatory', 'antioxidant', 'immune support', 'heart health',
        'digestive health', 'brain health', 'bone health', 'skin health',
        'weight management', 'energy boost', 'blood sugar', 'cholesterol',
        'detox', 'metabolism', 'cognitive', 'memory', 'circulation'
    ],
    "conditions": [
        'diabetes', 'hypertension', 'arthritis', 'cardiovascular', 'digestive issues',
        'inflammation', 'oxidative stress', 'metabolic syndrome', 'insulin resistance'
    ],
    "properties": [
        'organic', 'natural', 'raw', 'pure', 'whole grain', 'gluten-free',
        'non-gmo', 'pesticide-free', 'sustainable', 'traditional', 'medicinal'
    ],
}

CATEGORY_EXPANSIONS: Dict[str, List[str]] = {
    'spices': ['culinary spice', 'cooking ingredient', 'flavor enhancer', 'seasoning'],
    'herbs': ['medicinal herb', 'healing plant', 'herbal remedy', 'natural medicine'],
    'organic': ['certified organic', 'pesticide-free', 'natural farming', 'sustainable agriculture'],
    'supplements': ['dietary supplement', 'nutritional support', 'health supplement', 'wellness product'],
    'tea': ['herbal tea', 'medicinal tea', 'wellness beverage', 'therapeutic drink'],
    'honey': ['natural sweetener', 'bee product', 'raw honey', 'medicinal honey'],
    'oil': ['essential oil', 'natural oil', 'therapeutic oil', 'aromatic oil'],
}

ATTRIBUTE_CONTEXT: Dict[str, str] = {
    'weight': 'package size',
    'origin': 'geographical source',
    'grade': 'quality level',
    'processing': 'preparation method',
    'certification': 'quality assurance',
    'purity': 'concentration level',
}

TAG_EXPANSIONS: Dict[str, List[str]] = {
    'antioxidant': ['free radical scavenger', 'oxidative stress protection', 'cellular protection'],
    'anti-inflammatory': ['inflammation reducer', 'pain relief', 'swelling reduction'],
    'digestive': ['stomach health', 'gut wellness', 'digestion support'],
    'immune': ['immunity booster', 'defense system', 'resistance building'],
    'energy': ['vitality enhancer', 'stamina support', 'fatigue fighter'],
    'detox': ['cleansing agent', 'toxin removal', 'purification support'],
}

BENEFIT_EXPANSIONS: Dict[str, List[str]] = {
    'heart health': ['cardiovascular support', 'circulation improvement', 'blood pressure regulation'],
    'brain health': ['cognitive function', 'memory enhancement', 'mental clarity'],
    'bone health': ['skeletal strength', 'calcium absorption', 'joint support'],
    'skin health': ['dermal wellness', 'complexion improvement', 'skin vitality'],
    'weight management': ['metabolism support', 'appetite control', 'fat burning'],
    'blood sugar': ['glucose regulation', 'diabetes support', 'insulin sensitivity'],
}

KEYWORD_SYNONYMS: Dict[str, List[str]] = {
    'vitamin': ['nutrient', 'essential vitamin', 'micronutrient'],
    'mineral': ['trace element', 'essential mineral', 'micronutrient'],
    'protein': ['amino acids', 'muscle building', 'tissue repair'],
    'fiber': ['dietary fiber', 'digestive health', 'gut health'],
    'antioxidants': ['free radical fighters', 'cellular protection', 'aging prevention'],
    'omega-3': ['essential fatty acids', 'brain food', 'heart healthy fats'],
}

# Trigger phrase -> bracketed semantic role appended to descriptions
DESCRIPTION_CUES = [
    (re.compile(r'\b(contains|rich in|source of)\b', re.IGNORECASE), 'nutritional source'),
    (re.compile(r'\b(helps|supports|promotes|aids)\b', re.IGNORECASE), 'health benefit'),
    (re.compile(r'\b(traditional|ancient|centuries)\b', re.IGNORECASE), 'traditional medicine'),
    (re.compile(r'\b(fresh|natural|pure|raw)\b', re.IGNORECASE), 'natural product'),
]

DOMAIN_CONTEXTS = [
    (re.compile(r'\b(organic|natural|fresh|raw|farm|harvest|ingredient|spice|herb)\b'), 'agricultural food product'),
    (re.compile(r'\b(health|wellness|medicinal|therapeutic|healing|remedy|supplement)\b'), 'health and wellness product'),
    (re.compile(r'\b(traditional|ancient|ayurvedic|herbal|folk|remedy|medicine)\b'), 'traditional medicine'),
    (re.compile(r'\b(vitamin|mineral|nutrient|nutrition|dietary|supplement)\b'), 'nutritional product'),
    (re.compile(r'\b(cooking|culinary|kitchen|recipe|flavor|seasoning|taste)\b'), 'culinary ingredient'),
]

FOOD_CATEGORY_TYPES = ('spices', 'herbs', 'food', 'ingredients', 'supplements')
FOOD_TITLE_PATTERN = re.compile(r'\b(food|spice|herb|supplement|ingredient)\b', re.IGNORECASE)

STOP_WORDS = {
    'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
    'is', 'are', 'was', 'were', 'be', 'been', 'being', 'have', 'has', 'had', 'do',
    'does', 'did', 'will', 'would', 'should', 'could', 'can', 'may', 'might',
    'must', 'shall'
}


def _keyword_pattern(keyword: str) -> 're.Pattern':
    # Whole-term match; a trailing plural is tolerated
    return re.compile(r'(?<![\w-])' + re.escape(keyword) + r'(?:e?s)?(?![\w-])', re.IGNORECASE)


_KEYWORD_PATTERNS = [
    (keyword, _keyword_pattern(keyword))
    for vocabulary in DOMAIN_KEYWORDS.values()
    for keyword in vocabulary
]


def _ordered_keywords(text: str) -> List[str]:
    """Matched vocabulary terms in vocabulary order, deduplicated"""
    found: List[str] = []
    for keyword, pattern in _KEYWORD_PATTERNS:
        if keyword not in found and pattern.search(text):
            found.append(keyword)
    return found


def extract_domain_keywords(text: str) -> Set[str]:
    """
    Scan text against the nutrient, benefit, condition and property vocabularies

    Args:
        text: Free product text

    Returns:
        Set of vocabulary terms present in the text
    """
    if not text:
        return set()
    return set(_ordered_keywords(text))


def _dedupe(items: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    ordered = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


def enrich_title(title: str, categories: Optional[List[str]] = None) -> str:
    enriched = title
    categories = categories or []
    lowered = [c.lower() for c in categories]

    if any('organic' in c for c in lowered) and 'organic' not in title.lower():
        enriched = f"Organic {enriched}"

    if any(t in c for c in lowered for t in FOOD_CATEGORY_TYPES):
        if not FOOD_TITLE_PATTERN.search(title):
            enriched = f"{enriched} (natural food ingredient)"

    return enriched


def enrich_description(description: str) -> str:
    enhanced = description
    for pattern, context in DESCRIPTION_CUES:
        if pattern.search(description) and context not in enhanced:
            enhanced = f"{enhanced} [{context}]"
    return enhanced


def expand_categories(categories: List[str]) -> str:
    expanded: List[str] = []
    for category in categories:
        lower_cat = category.lower()
        expanded.append(category)
        for key, expansions in CATEGORY_EXPANSIONS.items():
            if key in lower_cat:
                expanded.extend(expansions)
                break
    return ", ".join(_dedupe(expanded))


def expand_attributes(attributes: List[Dict[str, Any]]) -> str:
    described = []
    for attr in attributes:
        name = str(attr.get("name", ""))
        context = ATTRIBUTE_CONTEXT.get(name.lower(), name)
        options = ", ".join(str(o) for o in attr.get("options") or [])
        described.append(f"{context}: {options}")
    return "; ".join(described)


def expand_tags(tags: List[str]) -> str:
    expanded: List[str] = []
    for tag in tags:
        expanded.append(tag)
        expanded.extend(TAG_EXPANSIONS.get(tag.lower(), []))
    return ", ".join(_dedupe(expanded))


def expand_benefits(benefits: List[str]) -> str:
    expanded: List[str] = []
    for benefit in benefits:
        lower_benefit = benefit.lower()
        expanded.append(benefit)
        for key, expansions in BENEFIT_EXPANSIONS.items():
            if key in lower_benefit:
                expanded.extend(expansions)
                break
    return ", ".join(_dedupe(expanded))


def expand_keywords(keywords: List[str]) -> str:
    expanded: List[str] = []
    for keyword in keywords:
        expanded.append(keyword)
        expanded.extend(KEYWORD_SYNONYMS.get(keyword.lower(), []))
    return ", ".join(_dedupe(expanded))


def infer_domain_context(text: str) -> List[str]:
    lower_text = text.lower()
    return [label for pattern, label in DOMAIN_CONTEXTS if pattern.search(lower_text)]


def enrich_text(
    title: str,
    description: str = "",
    categories: Optional[List[str]] = None,
    attributes: Optional[List[Dict[str, Any]]] = None,
    tags: Optional[List[str]] = None,
    benefits: Optional[List[str]] = None
) -> str:
    """
    Build the pipe-delimited, embedding-ready representation of a product

    Sections appear in a fixed order: enriched title, annotated description,
    category expansion, attributes, tags, benefits, extracted keyword
    expansion and inferred domain context. Pure function.
    """
    parts = [enrich_title(title, categories)]

    if description:
        parts.append(enrich_description(description))

    if categories:
        parts.append(f"Product Category: {expand_categories(categories)}")

    if attributes:
        parts.append(f"Product Properties: {expand_attributes(attributes)}")

    if tags:
        parts.append(f"Product Tags: {expand_tags(tags)}")

    if benefits:
        parts.append(f"Health Benefits: {expand_benefits(benefits)}")

    keywords = _ordered_keywords(" ".join(parts))
    if keywords:
        parts.append(f"Health Properties: {expand_keywords(keywords)}")

    domains = infer_domain_context(" ".join(parts))
    if domains:
        parts.append(f"Domain Context: {', '.join(domains)}")

    return " | ".join(parts)


def semantic_chunking(text: str, max_chunk_size: int = 500) -> List[str]:
    """
    Split text on sentence boundaries into chunks of at most max_chunk_size
    characters, plus the trailing period

    A sentence is never split; one longer than the limit becomes its own chunk.
    """
    if len(text) <= max_chunk_size:
        return [text]

    sentences = [s.strip() for s in re.split(r'[.!?]+', text) if s.strip()]
    chunks: List[str] = []
    current = ""

    for sentence in sentences:
        candidate = f"{current}. {sentence}" if current else sentence
        if len(candidate) <= max_chunk_size:
            current = candidate
        else:
            if current:
                chunks.append(current + '.')
            current = sentence

    if current:
        chunks.append(current + '.')

    return chunks


def preprocess_text(text: str) -> str:
    """Normalize text before it is handed to the embedding model"""
    processed = re.sub(r'\s+', ' ', text).strip().lower()

    words = processed.split(' ')
    if len(words) > 10:
        processed = ' '.join(w for w in words if w not in STOP_WORDS or len(w) < 3)

    return processed
