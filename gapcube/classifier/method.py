"""
Method axis (x): how the work was done.

Buckets:
    0 = imaging/observation
    1 = computational
    2 = experimental

Scoring per bucket:
    +3 per declared field of study matching a bucket field
    +1 per bucket term found in title + abstract
    +2 per concept tag matching a bucket concept
    +4 if the primary topic field/subfield matches the bucket pattern
    +5 to the hinted bucket when a method hint has confidence > 0.3
    +3 computational baseline for code repositories

Highest score wins; ties go to the lowest bucket, no signal gives 0.
"""

import re

from gapcube.models import Document

METHOD_KEYWORDS = {
    0: {
        "fields": ["Medicine", "Biology", "Environmental Science", "Psychology", "Sociology"],
        "terms": [
            "microscopy", "imaging", "mri", "ct scan", "pet scan", "radiograph",
            "ultrasound", "fluorescence", "staining", "biopsy", "histology",
            "pathology", "spectroscopy", "crystallography", "observation",
            "observational", "survey", "epidemiolog", "cohort study", "case-control",
            "longitudinal", "cross-sectional", "retrospective study", "prospective study",
            "population-based", "prevalence", "incidence", "surveillance",
            "x-ray", "tomography", "endoscopy", "immunohistochemistry", "ihc",
            "flow cytometry", "electron microscopy", "confocal", "mass spectrometry",
        ],
    },
    1: {
        "fields": ["Computer Science", "Mathematics", "Physics"],
        "terms": [
            "algorithm", "computational", "machine learning", "deep learning",
            "neural network", "bioinformatics", "in silico", "in-silico",
            "simulation", "modeling", "modelling", "statistical model",
            "bayesian", "regression analysis", "classifier", "natural language",
            "genomic analysis", "transcriptomic", "proteomic analysis",
            "sequencing analysis", "pipeline", "database", "data mining",
            "network analysis", "pathway analysis", "gene expression analysis",
            "random forest", "support vector", "convolutional", "recurrent",
            "transformer model", "artificial intelligence", "prediction model",
            "prognostic model", "risk prediction", "meta-analysis",
            "systematic review", "genome-wide", "gwas", "single-cell rna",
        ],
    },
    2: {
        "fields": ["Chemistry", "Materials Science"],
        "terms": [
            "experiment", "in vivo", "in-vivo", "in vitro", "in-vitro",
            "clinical trial", "randomized", "randomised", "placebo",
            "intervention", "knockout", "crispr", "cas9", "gene editing",
            "assay", "western blot", "pcr", "qpcr", "rt-pcr",
            "transfection", "cell culture", "cell line", "mouse model",
            "xenograft", "dose-response", "pharmacokinetic", "pharmacodynamic",
            "synthesis", "compound", "inhibitor", "agonist", "antagonist",
            "ic50", "ec50", "cytotoxicity", "apoptosis assay",
            "colony formation", "wound healing assay", "migration assay",
            "invasion assay", "tumor model", "orthotopic", "subcutaneous",
            "elisa", "immunoprecipitation", "chip-seq", "sirna", "shrna",
            "overexpression", "knockdown", "mutagenesis", "cloning",
        ],
    },
}

CONCEPT_MAP = {
    0: ["microscopy", "imaging", "spectroscopy", "radiology", "pathology", "epidemiology", "observation"],
    1: [
        "machine learning", "artificial intelligence", "bioinformatics", "computational biology",
        "algorithm", "statistics", "computer science",
    ],
    2: [
        "clinical trial", "pharmacology", "cell biology", "molecular biology",
        "genetics", "chemistry", "experimental",
    ],
}

TOPIC_PATTERNS = {
    0: re.compile(r"imaging|radiology|pathology|epidemiol|spectro|microscop|observ"),
    1: re.compile(r"computer|comput|informatic|math|statistic|algorithm|artificial"),
    2: re.compile(r"pharmacol|clinical|experiment|molecular|cell bio|genetics|chem"),
}

FIELD_WEIGHT = 3
TERM_WEIGHT = 1
CONCEPT_WEIGHT = 2
TOPIC_WEIGHT = 4
HINT_WEIGHT = 5
HINT_MIN_CONFIDENCE = 0.3
REPOSITORY_BASELINE = 3


def method_scores(doc: Document) -> list[int]:
    """Raw per-bucket scores [observation, computational, experimental]."""
    text = doc.text.lower()
    fields = [f.lower() for f in doc.fields_of_study]
    concepts = [c.lower() for c in doc.concept_tags]
    scores = [0, 0, 0]

    for bucket, vocab in METHOD_KEYWORDS.items():
        for f in vocab["fields"]:
            if any(f.lower() in declared for declared in fields):
                scores[bucket] += FIELD_WEIGHT
        for term in vocab["terms"]:
            if term in text:
                scores[bucket] += TERM_WEIGHT

    for bucket, terms in CONCEPT_MAP.items():
        for term in terms:
            if any(term in c for c in concepts):
                scores[bucket] += CONCEPT_WEIGHT

    if doc.primary_topic:
        topic = f"{doc.primary_topic.field} {doc.primary_topic.subfield}".lower()
        for bucket, pattern in TOPIC_PATTERNS.items():
            if pattern.search(topic):
                scores[bucket] += TOPIC_WEIGHT

    hint = doc.method_hint
    if hint is not None and hint.bucket in (0, 1, 2) and hint.confidence > HINT_MIN_CONFIDENCE:
        scores[hint.bucket] += HINT_WEIGHT

    if doc.doc_type == "repository":
        scores[1] += REPOSITORY_BASELINE

    return scores


def classify_method(doc: Document) -> int:
    """Method bucket for a document. Pure."""
    scores = method_scores(doc)
    best = max(scores)
    if best == 0:
        return 0
    return scores.index(best)
