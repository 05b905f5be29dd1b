"""Parsing of boost/exclude annotation documents.

Accepted forms::

    <annotations>
      <boost><label>foster care</label><label>CPS</label></boost>
      <exclude><label>adoption</label></exclude>
    </annotations>

or a mapping ``{"boost": [...], "exclude": [...]}``, or an ``Annotations``
instance. Either list may be omitted.
"""

from __future__ import annotations
import xml.etree.ElementTree as ET
from typing import Any, List, Mapping, Optional, Union

from .exceptions import AnnotationError
from .models import Annotations

AnnotationInput = Union[None, str, bytes, Mapping[str, Any], Annotations]


def _labels(root: ET.Element, section: str) -> List[str]:
    node = root.find(section)
    if node is None:
        return []
    return [(el.text or "").strip() for el in node.findall("label") if (el.text or "").strip()]


def parse_annotation_xml(document: Union[str, bytes]) -> Annotations:
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise AnnotationError(f"Malformed annotations document: {e}") from e
    if root.tag != "annotations":
        raise AnnotationError(f"Expected <annotations> root, got <{root.tag}>")
    return Annotations(boost=_labels(root, "boost"), exclude=_labels(root, "exclude"))


def _as_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    try:
        return [str(v) for v in value]
    except TypeError:
        raise AnnotationError(f"'{name}' must be a list of labels") from None


def parse_annotations(document: AnnotationInput) -> Annotations:
    """Normalize any accepted annotation form to ``Annotations``."""
    if document is None:
        return Annotations()
    if isinstance(document, Annotations):
        return document
    if isinstance(document, (str, bytes)):
        if not document.strip():
            return Annotations()
        return parse_annotation_xml(document)
    if isinstance(document, Mapping):
        return Annotations(
            boost=_as_list(document.get("boost"), "boost"),
            exclude=_as_list(document.get("exclude"), "exclude"),
        )
    raise AnnotationError(f"Unsupported annotations type: {type(document).__name__}")


def load_annotations(path: Optional[str]) -> Annotations:
    """Read an XML annotations file; no path means no annotations."""
    if not path:
        return Annotations()
    try:
        with open(path, "rb") as fh:
            return parse_annotation_xml(fh.read())
    except OSError as e:
        raise AnnotationError(f"Cannot read annotations file {path}: {e}") from e
