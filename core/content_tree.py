"""
Content Tree - Design Content Rules

Pure functions over the JSON parts of a design:

1. default_metadata()           - metadata of a freshly created design
2. regenerate_content_ids()     - copy of ``data`` with new activity/task ids
3. validate_import_payload()    - all-or-nothing structural check of an
                                  externally supplied design
4. normalize_metadata()         - bring metadata onto the canonical schema
5. apply_metadata_update()      - merge an edit into existing metadata

None of these functions mutate their inputs; copies never share mutable
structures with the source.
"""

import copy
import os
import uuid
from typing import Any, Dict, Iterable, List, Optional

from .errors import CorruptPayloadError, InvalidInputError

UNCATEGORIZED_CATEGORY_ID = os.getenv("UNCATEGORIZED_CATEGORY_ID", "603428218fe538f505b5ac90")

DEFAULT_DESIGN_NAME = "New Design"
DUPLICATE_SUFFIX = " (Duplicate)"

REQUIRED_TOP_LEVEL_FIELDS = ("data", "metadata", "comments", "assessments", "keywords")

REQUIRED_METADATA_FIELDS = (
    "name",
    "isPublic",
    "scoreMean",
    "category",
    "results",
    "workingTime",
    "workingTimeDesign",
    "classSize",
    "description",
    "priorKnowledge",
    "evaluation",
    "evaluationPattern",
)

# Optional on import, filled in when absent
OPTIONAL_METADATA_DEFAULTS = {
    "objective": "",
}


def new_node_id() -> str:
    """Ids for activities and tasks use the same scheme as design ids."""
    return str(uuid.uuid4())


def default_metadata(is_public: bool = False) -> Dict[str, Any]:
    return {
        "name": DEFAULT_DESIGN_NAME,
        "isPublic": bool(is_public),
        "scoreMean": 0,
        "category": UNCATEGORIZED_CATEGORY_ID,
        "results": [],
        "workingTime": {"hours": 0, "minutes": 0},
        "workingTimeDesign": {"hours": 0, "minutes": 0},
        "priorKnowledge": "",
        "description": "",
        "objective": "",
        "evaluation": "",
        "evaluationPattern": "",
        "classSize": 0,
    }


def empty_content() -> Dict[str, Any]:
    return {"learningActivities": []}


def regenerate_content_ids(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Return a deep copy of a design's ``data`` with fresh ids.

    Every activity and every task inside it gets a newly minted id; all other
    fields are copied verbatim. The walk fails loudly (CorruptPayloadError) on
    a tree that is not shaped like activities -> tasks.
    """
    new_data = copy.deepcopy(data) if data else {}
    activities = new_data.get("learningActivities")
    if activities is None:
        new_data["learningActivities"] = []
        return new_data
    if not isinstance(activities, list):
        raise CorruptPayloadError("learningActivities must be a list")

    for activity in activities:
        if not isinstance(activity, dict):
            raise CorruptPayloadError("Each learning activity must be an object")
        activity["id"] = new_node_id()
        tasks = activity.get("tasks")
        if tasks is None:
            activity["tasks"] = []
            continue
        if not isinstance(tasks, list):
            raise CorruptPayloadError("Activity tasks must be a list")
        for task in tasks:
            if not isinstance(task, dict):
                raise CorruptPayloadError("Each task must be an object")
            task["id"] = new_node_id()

    return new_data


def _missing(container: Dict[str, Any], fields: Iterable[str]) -> List[str]:
    return [name for name in fields if name not in container]


def validate_import_payload(design: Any) -> None:
    """
    Structurally validate an imported design before anything is written.

    Raises CorruptPayloadError listing what is missing. Nothing about the
    payload is modified.
    """
    if not isinstance(design, dict):
        raise CorruptPayloadError("Design payload must be an object")

    missing = _missing(design, REQUIRED_TOP_LEVEL_FIELDS)
    if missing:
        raise CorruptPayloadError(f"Missing fields: {', '.join(missing)}")

    metadata = design["metadata"]
    data = design["data"]
    if not isinstance(metadata, dict) or not isinstance(data, dict):
        raise CorruptPayloadError("metadata and data must be objects")

    missing = [f"metadata.{name}" for name in _missing(metadata, REQUIRED_METADATA_FIELDS)]
    if "learningActivities" not in data:
        missing.append("data.learningActivities")
    if missing:
        raise CorruptPayloadError(f"Missing fields: {', '.join(missing)}")

    for name in ("comments", "assessments", "keywords"):
        if not isinstance(design[name], list):
            raise CorruptPayloadError(f"{name} must be a list")

    activities = data["learningActivities"]
    if not isinstance(activities, list):
        raise CorruptPayloadError("learningActivities must be a list")
    for index, activity in enumerate(activities):
        if not isinstance(activity, dict) or not isinstance(activity.get("tasks"), list):
            raise CorruptPayloadError(f"Learning activity {index} has no task list")
        if any(not isinstance(task, dict) for task in activity["tasks"]):
            raise CorruptPayloadError(f"Learning activity {index} has a malformed task")

    privileges = design.get("privileges", [])
    if not isinstance(privileges, list):
        raise CorruptPayloadError("privileges must be a list")


def reference_id(ref: Any) -> Optional[str]:
    """References (category, user) arrive either as an id or as a populated object."""
    if isinstance(ref, dict):
        ref = ref.get("_id") or ref.get("id")
    if ref is None:
        return None
    return str(ref)


def normalize_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Copy metadata onto the canonical schema."""
    result = copy.deepcopy(metadata)
    if "objetive" in result:
        result.setdefault("objective", result["objetive"])
        del result["objetive"]
    for name, default in OPTIONAL_METADATA_DEFAULTS.items():
        result.setdefault(name, default)
    result["category"] = reference_id(result.get("category")) or UNCATEGORIZED_CATEGORY_ID
    return result


# scoreMean is derived from assessments and never set by an edit
EDITABLE_METADATA_FIELDS = tuple(
    name for name in REQUIRED_METADATA_FIELDS if name != "scoreMean"
) + ("objective", "objetive")


def apply_metadata_update(current: Dict[str, Any], changes: Any) -> Dict[str, Any]:
    """
    Merge an edit into a design's metadata and return the new canonical copy.

    Raises InvalidInputError for unknown or read-only fields, a non-boolean
    isPublic or an empty name. Neither argument is modified.
    """
    if not isinstance(changes, dict) or not changes:
        raise InvalidInputError("No metadata changes specified")
    if "scoreMean" in changes:
        raise InvalidInputError("scoreMean is computed from the assessments and cannot be edited")
    unknown = sorted(name for name in changes if name not in EDITABLE_METADATA_FIELDS)
    if unknown:
        raise InvalidInputError(f"Unknown metadata fields: {', '.join(unknown)}")
    if "isPublic" in changes and not isinstance(changes["isPublic"], bool):
        raise InvalidInputError("isPublic must be true or false")
    if "name" in changes and (not isinstance(changes["name"], str) or not changes["name"].strip()):
        raise InvalidInputError("The design name cannot be empty")

    merged = copy.deepcopy(current or {})
    if "objetive" in changes or "objective" in changes:
        merged.pop("objetive", None)
        merged.pop("objective", None)
    merged.update(copy.deepcopy(changes))
    return normalize_metadata(merged)
