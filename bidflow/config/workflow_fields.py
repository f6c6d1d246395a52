"""Versioned field-id table for the remote analysis workflow.

The remote workflow identifies each input by an opaque field id. A schema
change on the remote side means adding a new version here and pointing
CURRENT_VERSION at it.
"""

from typing import Final, Mapping

LOGICAL_FIELDS: Final[tuple[str, ...]] = (
    "documents",
    "user_notes",
    "user_priorities",
    "request_id",
    "callback_url",
    "project_id",
)

FIELD_ID_VERSIONS: Final[Mapping[str, Mapping[str, str]]] = {
    "v18": {
        "documents": "699a33ad6787d2e1b0e9ed96",
        "user_notes": "699a33ad6787d2e1b0e9ed9a",
        "user_priorities": "699a33ad6787d2e1b0e9ed98",
        "request_id": "699a33ad6787d2e1b0e9ed97",
        "callback_url": "699a33ad6787d2e1b0e9ed9b",
        "project_id": "699a33ad6787d2e1b0e9ed99",
    },
}

CURRENT_VERSION: Final = "v18"


def resolve_field_ids(
    version: str = CURRENT_VERSION,
    overrides: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return the logical-name → field-id mapping for a schema version.

    Args:
        version: Key into FIELD_ID_VERSIONS
        overrides: Deployment-specific replacements for individual fields

    Raises:
        KeyError: If the version or an override name is unknown
    """
    field_ids = dict(FIELD_ID_VERSIONS[version])
    for name, field_id in (overrides or {}).items():
        if name not in LOGICAL_FIELDS:
            raise KeyError(f"Unknown workflow field: {name}")
        field_ids[name] = field_id
    return field_ids
