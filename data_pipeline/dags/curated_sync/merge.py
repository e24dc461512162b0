"""
dags/curated_sync/merge.py

Builds the final catalog record.

JSON schema per mod (curated/curated_list.json):
{
    "mod_id":            <int|str>,
    "name":              <str>,
    "summary":           <str>,
    "version":           <str>,
    "picture_url":       <str>,
    "author":            <str>,
    "mod_downloads":     <int>,
    "endorsement_count": <int>,
    "updated_timestamp": <int>,
    "created_timestamp": <int>,
    "description":       <str>,
    "state":             <str>,     ← always from the current curation file
    "warningMessage":    <str>,     ← always from the current curation file
    "files":             [ ... ],   ← opaque Nexus file descriptors
    "changelogs":        { "<version>": [ ... ] }
}
"""

from typing import Optional

from curated_sync.overlay import DEFAULT_STATE, DEFAULT_WARNING_MESSAGE, TrackedEntry
from curated_sync.record_store import CHANGELOGS_KEY, FILES_KEY

INFO_FIELDS = (
    "mod_id",
    "name",
    "summary",
    "version",
    "picture_url",
    "author",
    "mod_downloads",
    "endorsement_count",
    "updated_timestamp",
    "created_timestamp",
    "description",
)


def _curation_fields(entry: Optional[TrackedEntry]) -> dict:
    if entry is None:
        return {"state": DEFAULT_STATE, "warningMessage": DEFAULT_WARNING_MESSAGE}
    return {"state": entry.state, "warningMessage": entry.warning_message}


def build_final_record(
    info: dict,
    entry: Optional[TrackedEntry],
    files: list,
    changelogs: dict,
) -> dict:
    """Merge fetched or cached info fields with curation, files and changelogs."""
    record = {key: info.get(key) for key in INFO_FIELDS}
    record.update(_curation_fields(entry))
    record[FILES_KEY] = files
    record[CHANGELOGS_KEY] = changelogs
    return record


def refresh_curation(cached: dict, entry: Optional[TrackedEntry]) -> dict:
    """
    Rebuild a cached record with the current curation fields, so state and
    warning changes apply to mods whose Nexus data did not change.
    Missing files/changelogs stay missing so the next run still sees the
    record as incomplete.
    """
    record = {key: cached.get(key) for key in INFO_FIELDS}
    record.update(_curation_fields(entry))
    for key in (FILES_KEY, CHANGELOGS_KEY):
        if cached.get(key) is not None:
            record[key] = cached[key]
    return record
