"""
Query strategies for sampling.

Queries are designed to spread documents across all three axes:
1. Broad field x year (temporal diversity)
2. Method-biased (x-axis spread)
3. Surprise-biased (y-axis spread)
4. Cross-domain intersections (collision potential)
5. High-impact recent work
"""

import random
from typing import Optional

FIELDS = [
    "cancer", "immunology", "genomics", "neuroscience", "cardiology",
    "metabolic disease", "infectious disease", "microbiome", "stem cell",
    "drug discovery", "pharmacology", "epigenetics", "proteomics",
    "bioinformatics", "clinical trial", "pathology", "epidemiology",
    "synthetic biology", "gene therapy", "biomarker",
]

YEARS = [2018, 2019, 2020, 2021, 2022, 2023, 2024, 2025]

METHOD_QUERIES = [
    # Imaging/observation (x=0)
    "MRI imaging tumor detection",
    "histopathology cancer diagnosis",
    "epidemiological cohort cancer risk",
    "fluorescence microscopy cell",
    "mass spectrometry protein",
    # Computational (x=1)
    "machine learning cancer prediction",
    "bioinformatics genomic analysis",
    "deep learning medical imaging",
    "computational drug design",
    "network analysis gene expression",
    # Experimental (x=2)
    "CRISPR gene knockout cancer",
    "xenograft mouse model tumor",
    "clinical trial randomized cancer",
    "in vitro drug screening",
    "cell culture assay cytotoxicity",
]

SURPRISE_QUERIES = [
    "unexpected finding cancer",
    "paradoxical effect treatment",
    "contradicts previous findings",
    "surprising result tumor",
    "failed to replicate cancer",
    "serendipitous discovery biology",
    "novel mechanism disease",
    "counterintuitive immune response",
    "anomalous results clinical",
    "unprecedented response therapy",
]

CROSSDOMAIN_QUERIES = [
    "microbiome immunotherapy response",
    "artificial intelligence drug resistance",
    "epigenetics environmental exposure cancer",
    "gut bacteria chemotherapy",
    "machine learning pathology diagnosis",
    "metabolomics cancer biomarker",
    "nanotechnology drug delivery tumor",
    "circadian rhythm cancer treatment",
    "exercise oncology immune",
    "diet microbiome cancer prevention",
]

HIGH_IMPACT_QUERIES = [
    "highly cited cancer research 2024",
    "breakthrough therapy cancer 2024",
    "landmark study oncology 2023",
    "high impact immunotherapy 2024",
    "seminal finding genomics 2023",
]

# Plain keyword queries for topping up an undersized sample
FALLBACK_QUERIES = [
    "cancer", "immunotherapy", "genomics", "neuroscience", "microbiome",
    "machine learning", "CRISPR", "clinical trial", "protein structure",
    "single-cell", "drug resistance", "biomarker", "epidemiology",
    "stem cells", "metabolism", "inflammation", "gene expression",
    "imaging", "vaccine", "antibiotic resistance",
]


def build_query_list(rng: Optional[random.Random] = None) -> list[str]:
    """
    Build the ordered query list for one sampling run.

    Args:
        rng: Random source for the year pick (seed it for reproducible runs)

    Returns:
        Queries in strategy order
    """
    rng = rng or random.Random()
    queries = [f"{field} {rng.choice(YEARS)} research" for field in FIELDS[:10]]
    queries.extend(METHOD_QUERIES)
    queries.extend(SURPRISE_QUERIES)
    queries.extend(CROSSDOMAIN_QUERIES)
    queries.extend(HIGH_IMPACT_QUERIES)
    return queries
