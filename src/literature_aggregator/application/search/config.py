"""
AggregationConfig - Immutable static configuration for the pipeline.

Every term list, weight, threshold and ordering used by the aggregation
stages lives here. The object is built once (usually by the DI container),
validated, and passed explicitly to each stage; nothing in the pipeline
reads module-level tuning constants.

The numeric defaults (composite weights 0.45/0.25/0.20/0.10, title
similarity 0.95, admission threshold 3) are empirically tuned and should be
calibrated against a labeled relevance set before being relied upon.

Example:
    >>> config = AggregationConfig.default()
    >>> strict = config.with_overrides(admission_threshold=4)
    >>> strict.admission_threshold
    4
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any

from literature_aggregator.domain.entities import StudyType
from literature_aggregator.shared.exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class CompositeWeights:
    """Weights of the composite score dimensions (must sum to 1.0)."""

    semantic_relevance: float = 0.45
    domain_relevance: float = 0.25
    evidence_quality: float = 0.20
    citation_weight: float = 0.10

    @property
    def total(self) -> float:
        return self.semantic_relevance + self.domain_relevance + self.evidence_quality + self.citation_weight


@dataclass(frozen=True, slots=True)
class TopicProfile:
    """
    A therapeutic topic the classifier and query builder know about.

    Attributes:
        name: Topic identifier reported in ExpandedQuery.topics
        triggers: Query phrases that activate the topic
        content_terms: Record terms that earn the inclusion bonus
        inclusion_bonus: Points added in the inclusion phase
        synonyms: Boolean OR-group appended for boolean-style providers
    """

    name: str
    triggers: tuple[str, ...]
    content_terms: tuple[str, ...]
    inclusion_bonus: int = 2
    synonyms: tuple[str, ...] = ()


# =============================================================================
# Default vocabularies
# =============================================================================

OFF_DOMAIN_TERMS: tuple[str, ...] = (
    # Technical / computer science
    "machine learning", "deep learning", "neural network", "algorithm", "lstm",
    "artificial intelligence", "computer science", "software", "programming", "coding",
    "database", "computational", "data mining", "big data", "statistical modeling",
    "long short-term memory",
    # Physics / chemistry / engineering / materials
    "quantum", "physics", "chemistry", "engineering", "materials science", "nanotechnology",
    "semiconductor", "electronics", "mechanical", "electrical", "graphene", "transistor",
    "field effect", "semimetal", "carbon films",
    # Business / social sciences
    "business", "management", "marketing", "finance", "economics", "corporate strategy",
    "organizational behavior", "human resources", "accounting", "supply chain",
    "social media", "education policy", "political science", "sociology", "anthropology",
    # Other academic fields
    "literature", "linguistics", "philosophy", "history", "art", "music", "psychology",
)

DOMAIN_CONTEXT_TERMS: tuple[str, ...] = (
    "patient", "patients", "clinical", "medical", "health", "disease", "treatment", "therapy",
    "hospital", "doctor", "physician", "nurse", "diagnosis", "symptom", "symptoms",
)

ON_DOMAIN_TERMS: tuple[str, ...] = (
    # Clinical
    "patient", "patients", "treatment", "therapy", "clinical", "medical", "disease", "diagnosis",
    "symptom", "health", "healthcare", "medicine", "pharmaceutical", "drug", "medication",
    "intervention", "outcome", "outcomes", "efficacy", "safety", "adverse", "side effect",
    "randomized", "controlled trial", "meta-analysis", "systematic review", "cohort",
    "case-control", "epidemiologic", "prevalence", "incidence", "mortality", "morbidity",
    "prognosis", "biomarker", "screening", "prevention",
    # Infectious disease
    "covid", "covid-19", "sars-cov-2", "coronavirus", "pandemic", "long covid", "virus", "viral",
    "infectious", "epidemic", "pathogen", "vaccine", "vaccination",
    # Specialties
    "cardiology", "oncology", "neurology", "psychiatry", "pediatrics", "surgery", "radiology",
    "pathology", "pharmacology", "immunology", "dermatology", "gastroenterology",
    "endocrinology", "pulmonology", "nephrology", "hematology", "rheumatology",
    # Anatomy
    "heart", "brain", "lung", "liver", "kidney", "blood", "tissue", "organ", "bone", "muscle",
    "nerve", "artery", "vein", "immune system", "respiratory", "cardiovascular",
    # Pathology
    "cancer", "tumor", "diabetes", "hypertension", "infection", "inflammation", "stroke",
    "pneumonia", "asthma", "copd", "alzheimer", "parkinson", "epilepsy", "depression",
    # Maternal / pediatric
    "breastfeeding", "breast feeding", "lactation", "infant", "infants", "child", "children",
    "childhood", "pediatric", "maternal", "pregnancy", "prenatal", "postnatal", "newborn",
    "allergy", "atopy", "wheeze", "wheezing",
    # Nutrition / lipids
    "omega-3", "fatty acid", "fish oil", "supplement", "supplementation", "nutrition",
    "diet", "dietary", "vitamin", "cholesterol", "ldl", "hdl", "triglycerides", "lipid",
    "lipids", "statin", "statins", "atherosclerosis", "myocardial infarction",
    # Study designs
    "clinical trial", "cohort study", "case report", "rct", "double-blind", "placebo",
    "crossover", "longitudinal",
)

PENALTY_TERMS: tuple[str, ...] = (
    "business management", "strategic management", "competitive advantage", "firm resources",
    "organizational behavior", "corporate strategy", "business strategy", "marketing research",
    "finance", "economics", "accounting", "leadership", "corporate",
    "self-determination theory", "goal pursuit", "motivation theory", "psychology research",
    "social psychology", "educational psychology", "cognitive psychology",
    "sociology", "philosophy", "politics", "engineering", "computer science", "mathematics",
    "physics", "chemistry", "environmental science", "agriculture", "legal studies",
    "literature", "linguistics", "anthropology", "archaeology",
)

REPUTABLE_VENUES: tuple[str, ...] = (
    "new england journal of medicine", "lancet", "jama", "bmj", "nature medicine",
    "plos medicine", "cochrane", "annals of internal medicine", "circulation",
    "journal of clinical", "american journal", "european journal", "cancer research",
    "journal of the american medical association", "british medical journal",
)

DOMAIN_SCORE_TERMS: tuple[str, ...] = (
    "patient", "treatment", "therapy", "clinical", "medical", "disease", "diagnosis",
    "health", "healthcare", "medicine", "pharmaceutical", "drug", "medication",
    "randomized", "controlled trial", "meta-analysis", "systematic review",
    "efficacy", "safety", "adverse", "intervention", "outcome", "study", "research",
    "chronic", "symptoms", "effects",
)

DOMAIN_SCORE_VENUES: tuple[str, ...] = (
    "new england journal of medicine", "lancet", "jama", "bmj", "nature medicine",
    "circulation", "american journal", "european journal", "journal of clinical",
    "hypertension", "cardiovascular", "heart", "medicine", "health",
)

SOFT_PENALTY_TERMS: tuple[str, ...] = (
    "pure mathematics", "theoretical physics", "computer programming", "business strategy",
    "marketing research", "financial analysis",
)

HARD_EXCLUSION_PATTERNS: tuple[str, ...] = (
    "electric field effect in atomically thin carbon films",
    "phq-9", "hospital anxiety and depression scale", "ces-d scale",
    "patient health questionnaire", "beck depression inventory", "hamilton depression rating",
    "valence and conductance bands", "gate voltage", "two-dimensional",
    "uterine perforation", "menstrual", "birth control", "contraception",
)

ALWAYS_EXCLUDE: tuple[str, ...] = (
    "mirena", "contraceptive", "intrauterine device", "iud", "graphene", "carbon films",
)

GENERIC_DOMAIN_TERMS: tuple[str, ...] = (
    "medical", "clinical", "health", "patient", "patients", "treatment", "therapy",
    "disease", "study", "research", "hospital",
)

STOP_WORDS: frozenset[str] = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "can", "do", "does", "for", "from",
        "has", "have", "how", "in", "into", "is", "it", "its", "of", "on", "or", "the",
        "their", "there", "this", "to", "vs", "was", "what", "when", "which", "who", "why",
        "with", "without", "between", "effect", "effects", "role", "use", "using",
    }
)

DEFAULT_TOPICS: tuple[TopicProfile, ...] = (
    TopicProfile(
        name="hypertension",
        triggers=("hypertension", "blood pressure"),
        content_terms=(
            "hypertension", "blood pressure", "cardiovascular", "lifestyle", "diet", "exercise",
            "physical activity", "sodium", "salt", "weight loss", "dash", "systolic", "diastolic",
        ),
        inclusion_bonus=2,
        synonyms=(
            "hypertension", "blood pressure", "cardiovascular", "lifestyle intervention",
            "diet therapy", "exercise therapy", "antihypertensive",
        ),
    ),
    TopicProfile(
        name="covid",
        triggers=("covid", "coronavirus", "sars-cov-2"),
        content_terms=(
            "covid", "covid-19", "sars-cov-2", "coronavirus", "long covid", "post covid", "viral",
            "respiratory", "pandemic", "long-term", "organ", "sequelae",
        ),
        inclusion_bonus=3,
        synonyms=(
            "covid", "covid-19", "sars-cov-2", "coronavirus", "long covid", "post covid",
            "viral", "respiratory", "pandemic",
        ),
    ),
    TopicProfile(
        name="omega-3",
        triggers=("omega", "fatty acid", "fish oil"),
        content_terms=(
            "omega-3", "omega 3", "fatty acid", "epa", "dha", "fish oil", "polyunsaturated",
            "depression", "mental health", "mood", "supplement",
        ),
        inclusion_bonus=3,
        synonyms=(
            "omega-3", "fatty acid", "fish oil", "EPA", "DHA", "polyunsaturated", "depression",
            "mental health", "supplement",
        ),
    ),
    TopicProfile(
        name="lipids",
        triggers=("hyperlipidemia", "cholesterol", "lipid", "statin", "dyslipidemia", "triglyceride"),
        content_terms=(
            "cholesterol", "ldl", "hdl", "triglycerides", "lipid", "lipids", "hyperlipidemia",
            "dyslipidemia", "statin", "statins", "atorvastatin", "simvastatin", "rosuvastatin",
            "cardiovascular", "atherosclerosis", "coronary", "fibrate", "niacin", "ezetimibe",
        ),
        inclusion_bonus=3,
        synonyms=(
            "cholesterol", "LDL", "lipid", "hyperlipidemia", "dyslipidemia", "statin",
            "cardiovascular risk",
        ),
    ),
    TopicProfile(
        name="breastfeeding",
        triggers=("breastfeeding", "breast feeding"),
        content_terms=(
            "breastfeeding", "breast feeding", "lactation", "infant feeding", "maternal",
            "infant", "child", "asthma", "wheeze", "atopy", "allergy",
        ),
        inclusion_bonus=2,
        synonyms=(
            "breastfeeding", "breast feeding", "lactation", "infant feeding", "maternal health",
            "pediatric", "infant", "child",
        ),
    ),
    TopicProfile(
        name="common-cold",
        triggers=("common cold", "rhinovirus", "zinc"),
        content_terms=(
            "common cold", "rhinovirus", "upper respiratory", "respiratory tract infection",
            "cold symptoms", "cold duration", "zinc", "lozenges",
        ),
        inclusion_bonus=2,
        synonyms=(
            "common cold", "rhinovirus", "upper respiratory infection", "cold symptoms",
            "cold duration", "respiratory tract infection",
        ),
    ),
    TopicProfile(
        name="vaccine",
        triggers=("vaccine", "vaccination", "autism"),
        content_terms=(
            "vaccine", "vaccination", "immunization", "immunisation", "autism",
            "autism spectrum disorder", "adverse events", "epidemiology",
        ),
        inclusion_bonus=2,
        synonyms=(
            "vaccine", "vaccination", "immunization", "immunisation", "autism",
            "autism spectrum disorder", "developmental disorder", "safety", "adverse events",
            "epidemiology",
        ),
    ),
    TopicProfile(
        name="diabetes",
        triggers=("diabetes", "blood sugar", "glucose"),
        content_terms=(
            "diabetes", "blood sugar", "glucose", "insulin", "diabetic", "glycemic control",
            "blood glucose", "hba1c",
        ),
        inclusion_bonus=2,
        synonyms=(
            "diabetes", "blood sugar", "glucose", "insulin", "diabetic", "glycemic control",
            "blood glucose", "type 2 diabetes", "type 1 diabetes",
        ),
    ),
    TopicProfile(
        name="cancer",
        triggers=("cancer", "tumor", "tumour", "oncology"),
        content_terms=(
            "cancer", "tumor", "tumour", "oncology", "chemotherapy", "radiation", "malignant",
            "carcinoma", "metastasis",
        ),
        inclusion_bonus=2,
        synonyms=(
            "cancer", "tumor", "tumour", "oncology", "chemotherapy", "radiation", "malignant",
            "carcinoma", "cancer treatment",
        ),
    ),
    TopicProfile(
        name="cardiovascular",
        triggers=("heart", "cardiac", "cardiovascular"),
        content_terms=(
            "heart", "cardiac", "cardiovascular", "heart disease", "coronary artery",
            "myocardial infarction", "heart failure", "cardiology",
        ),
        inclusion_bonus=2,
        synonyms=(
            "heart", "cardiac", "cardiovascular", "heart disease", "coronary artery",
            "myocardial infarction", "heart failure", "cardiology",
        ),
    ),
)

GENERAL_SYNONYMS: tuple[str, ...] = (
    "medical", "clinical", "health", "patient", "treatment", "therapy", "disease",
    "diagnosis", "healthcare", "study", "research",
)

DOMAIN_TAG_TRIGGERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("oncology", ("cancer", "tumor", "tumour", "oncology", "carcinoma")),
    ("cardiology", ("heart", "cardiac", "cardiovascular", "coronary")),
    ("neurology", ("brain", "neuro", "neurological", "stroke", "dementia")),
    ("endocrinology", ("diabetes", "insulin", "glucose", "thyroid")),
    ("pharmaceuticals", ("drug", "drugs", "medication", "medications", "dose", "dosage", "pharmaceutical")),
    ("medical-devices", ("device", "devices", "implant", "equipment", "surgical")),
)

DOMAIN_TAG_MESH_TERMS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("oncology", ("Neoplasms[MeSH]",)),
    ("cardiology", ('"Cardiovascular Diseases"[MeSH]',)),
    ("neurology", ('"Nervous System Diseases"[MeSH]',)),
    ("endocrinology", ('"Endocrine System Diseases"[MeSH]',)),
    ("pharmaceuticals", ('"Pharmaceutical Preparations"[MeSH]',)),
    ("medical-devices", ('"Equipment and Supplies"[MeSH]',)),
)

# (regex, replacement) pairs; each matching pair yields one extra variant
VARIANT_SUBSTITUTIONS: tuple[tuple[str, str], ...] = (
    (r"\bbreast ?feeding\b", "lactation"),
    (r"\b(?:childhood|pediatric)(?= asthma\b)", "infant"),
    (r"\b(?:reduce|prevent)s?\b", "protective effect"),
    (r"\b(?:reduce|prevent)s?\b", "lower risk"),
)

REGULATORY_GATE_TERMS: tuple[str, ...] = (
    "fda", "drug", "drugs", "device", "devices", "medication", "medications", "adverse",
    "safety", "recall", "warning", "implant", "dose", "dosage", "side effect", "side effects",
)

STUDY_TYPE_PATTERNS: tuple[tuple[StudyType, tuple[str, ...]], ...] = (
    (StudyType.META_ANALYSIS, ("meta-analysis", "meta analysis", "metaanalysis")),
    (StudyType.SYSTEMATIC_REVIEW, ("systematic review",)),
    (StudyType.RANDOMIZED_CONTROLLED_TRIAL, ("randomized", "randomised", "rct")),
    (StudyType.CLINICAL_TRIAL, ("clinical trial",)),
    (StudyType.COHORT, ("cohort",)),
    (StudyType.CASE_CONTROL, ("case-control", "case control")),
)

STUDY_TYPE_POINTS: tuple[tuple[StudyType, float], ...] = (
    (StudyType.META_ANALYSIS, 0.5),
    (StudyType.SYSTEMATIC_REVIEW, 0.45),
    (StudyType.RANDOMIZED_CONTROLLED_TRIAL, 0.4),
    (StudyType.CLINICAL_TRIAL, 0.35),
    (StudyType.COHORT, 0.3),
)

EVIDENCE_LEVELS: tuple[tuple[StudyType, str], ...] = (
    (StudyType.META_ANALYSIS, "1a"),
    (StudyType.SYSTEMATIC_REVIEW, "1b"),
    (StudyType.RANDOMIZED_CONTROLLED_TRIAL, "2b"),
)


# =============================================================================
# Configuration object
# =============================================================================


@dataclass(frozen=True, slots=True)
class AggregationConfig:
    """
    Static, read-only configuration of the aggregation pipeline.

    Only tuples, frozensets and nested frozen dataclasses are stored so the
    object is hashable and can be shared by concurrent requests.
    """

    # Output
    default_target_count: int = 10

    # Source orchestration
    provider_timeout: float = 20.0
    provider_max_results: int = 20
    gap_fill_primary_min: int = 2
    gap_fill_min_total: int = 3
    gap_fill_max_results: int = 25
    regulatory_gate_terms: tuple[str, ...] = REGULATORY_GATE_TERMS
    regulatory_gate_domains: frozenset[str] = frozenset({"pharmaceuticals", "medical-devices"})
    disabled_providers: frozenset[str] = frozenset()

    # Query expansion
    stop_words: frozenset[str] = STOP_WORDS
    domain_tag_triggers: tuple[tuple[str, tuple[str, ...]], ...] = DOMAIN_TAG_TRIGGERS
    domain_tag_mesh_terms: tuple[tuple[str, tuple[str, ...]], ...] = DOMAIN_TAG_MESH_TERMS
    default_domain_tag: str = "general-medicine"
    topics: tuple[TopicProfile, ...] = DEFAULT_TOPICS
    general_synonyms: tuple[str, ...] = GENERAL_SYNONYMS
    core_keyword_limit: int = 3
    variant_substitutions: tuple[tuple[str, str], ...] = VARIANT_SUBSTITUTIONS
    variant_additions: tuple[tuple[str, str], ...] = (
        ("breastfeeding", "infant feeding"),
        ("breast feeding", "infant feeding"),
    )
    variant_suffixes: tuple[str, ...] = ("systematic review", "meta-analysis", "cohort study")
    mesh_term_limit: int = 2
    broadening_groups: tuple[tuple[str, ...], ...] = (
        ("clinical", "medical", "health"),
        ("treatment", "therapy", "intervention"),
    )

    # Relevance classification
    off_domain_terms: tuple[str, ...] = OFF_DOMAIN_TERMS
    domain_context_terms: tuple[str, ...] = DOMAIN_CONTEXT_TERMS
    on_domain_terms: tuple[str, ...] = ON_DOMAIN_TERMS
    penalty_terms: tuple[str, ...] = PENALTY_TERMS
    reputable_venues: tuple[str, ...] = REPUTABLE_VENUES
    on_domain_bands: tuple[tuple[int, int], ...] = ((3, 4), (2, 2), (1, 1))
    venue_points: int = 2
    penalty_points: int = 5
    admission_threshold: int = 3
    domain_score_terms: tuple[str, ...] = DOMAIN_SCORE_TERMS
    domain_score_venues: tuple[str, ...] = DOMAIN_SCORE_VENUES
    soft_penalty_terms: tuple[str, ...] = SOFT_PENALTY_TERMS
    domain_term_saturation: int = 3
    domain_term_weight: float = 0.25
    domain_query_weight: float = 0.5
    domain_venue_bonus: float = 0.15
    domain_topic_bonus: float = 0.1
    domain_soft_penalty: float = 0.05

    # Composite scoring
    weights: CompositeWeights = field(default_factory=CompositeWeights)
    source_bonuses: tuple[tuple[str, float], ...] = (("semantic_scholar", 0.1),)
    study_type_patterns: tuple[tuple[StudyType, tuple[str, ...]], ...] = STUDY_TYPE_PATTERNS
    study_type_points: tuple[tuple[StudyType, float], ...] = STUDY_TYPE_POINTS
    study_type_floor: float = 0.2
    evidence_levels: tuple[tuple[StudyType, str], ...] = EVIDENCE_LEVELS
    default_evidence_level: str = "3"
    citation_bands: tuple[tuple[int, float], ...] = ((100, 0.3), (50, 0.25), (20, 0.2), (5, 0.15))
    citation_band_floor: float = 0.1
    recency_bands: tuple[tuple[int, float], ...] = ((2, 0.2), (5, 0.15), (10, 0.1))
    recency_band_floor: float = 0.05
    citation_log_divisor: float = 10.0

    # Deduplication
    title_similarity_threshold: float = 0.95
    source_preference: tuple[str, ...] = (
        "semantic_scholar",
        "pubmed",
        "crossref",
        "europe_pmc",
        "openalex",
        "openfda",
    )

    # Finalization
    hard_exclusion_patterns: tuple[str, ...] = HARD_EXCLUSION_PATTERNS
    always_exclude: tuple[str, ...] = ALWAYS_EXCLUDE
    generic_domain_terms: tuple[str, ...] = GENERIC_DOMAIN_TERMS

    @classmethod
    def default(cls) -> AggregationConfig:
        """Get the default, validated configuration."""
        return cls().validate()

    def with_overrides(self, **changes: Any) -> AggregationConfig:
        """Return a validated copy with the given fields replaced."""
        return replace(self, **changes).validate()

    def source_rank(self, source: str) -> int:
        """Position in the preference list; unknown sources rank after all known ones."""
        try:
            return self.source_preference.index(source)
        except ValueError:
            return len(self.source_preference)

    def source_bonus(self, source: str) -> float:
        return dict(self.source_bonuses).get(source, 0.0)

    def validate(self) -> AggregationConfig:
        """
        Check internal consistency.

        Raises:
            ConfigurationError: On weights not summing to 1, thresholds out of
                range, or a term listed both as off-domain and as override
                context (which would make the exclusion outcome depend on list
                order).
        """
        if not math.isclose(self.weights.total, 1.0, abs_tol=1e-6):
            raise ConfigurationError(f"Composite weights must sum to 1.0, got {self.weights.total:.3f}")
        if not 0.0 < self.title_similarity_threshold <= 1.0:
            raise ConfigurationError(
                f"title_similarity_threshold must be in (0, 1], got {self.title_similarity_threshold}"
            )
        if self.default_target_count < 1:
            raise ConfigurationError(f"default_target_count must be positive, got {self.default_target_count}")
        if self.provider_timeout <= 0:
            raise ConfigurationError(f"provider_timeout must be positive, got {self.provider_timeout}")
        overlap = set(self.off_domain_terms) & set(self.domain_context_terms)
        if overlap:
            raise ConfigurationError(
                f"Terms cannot be both off-domain and domain context: {', '.join(sorted(overlap))}"
            )
        if len(set(self.source_preference)) != len(self.source_preference):
            raise ConfigurationError("source_preference contains duplicates")
        return self
