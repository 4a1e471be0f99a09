"""
Finding type classification.

GuardDuty finding types follow ThreatPurpose:ResourceNamespace/Artifact, e.g.
"UnauthorizedAccess:IAMUser/InstanceCredentialExfiltration.OutsideAWS".

- classify() is a pure function and never raises; strings it cannot fully place are
  returned with recognized=False and whatever segments could be read.
- Which purpose/namespace pairs count as known is decided by a lookup table built from
  config.KNOWN_FINDING_CATEGORIES, kept apart from the parsing below.
"""

import logging
import re
from typing import AbstractSet, Optional, Tuple

from config import known_category_pairs
from models import TypeTaxonomy

logger = logging.getLogger(__name__)

PURPOSE_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9]*")
NAMESPACE_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9]*")
# printable ASCII, no whitespace
ARTIFACT_PATTERN = re.compile(r"[!-~]+")

KNOWN_CATEGORIES: AbstractSet[Tuple[str, str]] = known_category_pairs()


def split_type(type_string: str) -> Tuple[str, str, str, bool]:
    """
    Split a type string on the first ":" and then the first "/" after it.

    Returns (purpose, namespace, artifact, well_formed). Missing segments are "".
    """
    purpose, colon, remainder = type_string.partition(":")
    if not colon:
        return purpose, "", "", False
    namespace, slash, artifact = remainder.partition("/")
    if not slash:
        return purpose, namespace, "", False
    return purpose, namespace, artifact, True


def segments_valid(purpose: str, namespace: str, artifact: str) -> bool:
    return bool(
        PURPOSE_PATTERN.fullmatch(purpose)
        and NAMESPACE_PATTERN.fullmatch(namespace)
        and ARTIFACT_PATTERN.fullmatch(artifact)
    )


def classify(type_string: Optional[str], known: Optional[AbstractSet[Tuple[str, str]]] = None) -> TypeTaxonomy:
    """
    Classify a finding type string against the known categories.

    - Malformed strings (missing ":" or "/", empty or invalid segments) are unrecognized.
    - Well-formed strings whose (purpose, namespace) pair is not in `known` are
      unrecognized but keep their segments verbatim.
    """
    known = KNOWN_CATEGORIES if known is None else known
    raw = type_string if isinstance(type_string, str) else ""

    purpose, namespace, artifact, well_formed = split_type(raw)
    if not well_formed or not segments_valid(purpose, namespace, artifact):
        logger.debug("Finding type %r does not match Purpose:Namespace/Artifact", raw)
        return TypeTaxonomy(purpose, namespace, artifact, recognized=False, raw=raw)

    recognized = (purpose, namespace) in known
    if not recognized:
        logger.info("Unknown finding category %s:%s in %r", purpose, namespace, raw)
    return TypeTaxonomy(purpose, namespace, artifact, recognized=recognized, raw=raw)
