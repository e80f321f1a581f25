"""Variation type classification from REF/ALT alleles."""

from __future__ import annotations

SNV = "SNV"
MNP = "MNP"
INSERTION = "INS"
DELETION = "DEL"
STRUCTURAL = "SV"


def classify_variation_type(reference: str, alternatives: tuple[str, ...]) -> str:
    """Classify a record by its first alternative allele.

    Symbolic (``<DEL>``) and breakend alleles are structural variants.
    Records without an alternative allele are reported as SNV.
    """
    if not alternatives:
        return SNV
    alternative = alternatives[0]
    if alternative.startswith("<") or "[" in alternative or "]" in alternative:
        return STRUCTURAL
    if len(reference) == len(alternative):
        return SNV if len(reference) == 1 else MNP
    return INSERTION if len(alternative) > len(reference) else DELETION
