"""Lightweight structural validation for generated clinical document bundles."""

from __future__ import annotations

from typing import Any

from .mapping import SECTION_RESOURCE_TYPES


def _collect_references(node: Any) -> set[str]:
    refs: set[str] = set()
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "reference" and isinstance(value, str) and value.startswith("urn:uuid:"):
                refs.add(value)
            else:
                refs.update(_collect_references(value))
    elif isinstance(node, list):
        for item in node:
            refs.update(_collect_references(item))
    return refs


def _section_references(composition: dict[str, Any]) -> set[str]:
    refs: set[str] = set()
    for section in composition.get("section") or []:
        for entry in section.get("entry") or []:
            reference = entry.get("reference") if isinstance(entry, dict) else None
            if isinstance(reference, str):
                refs.add(reference)
    return refs


def validate_fhir_bundle_structure(bundle: dict[str, Any]) -> list[str]:
    """Validate document bundle structure, internal references and section consistency."""
    issues: list[str] = []

    if not isinstance(bundle, dict):
        return ["fatal: bundle must be a JSON object."]

    if bundle.get("resourceType") != "Bundle":
        issues.append("fatal: resourceType must be 'Bundle'.")
    if bundle.get("type") != "document":
        issues.append("fatal: bundle type must be 'document'.")

    entries = bundle.get("entry")
    if not isinstance(entries, list) or not entries:
        issues.append("fatal: bundle.entry must be a non-empty array.")
        return issues

    full_urls: set[str] = set()
    resource_types: set[str] = set()
    section_tracked: dict[str, str] = {}

    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            issues.append(f"fatal: bundle.entry[{index}] must be an object.")
            continue
        full_url = entry.get("fullUrl")
        resource = entry.get("resource")
        if not isinstance(full_url, str) or not full_url.startswith("urn:uuid:"):
            issues.append(f"fatal: bundle.entry[{index}] missing valid urn:uuid fullUrl.")
            full_url = None
        elif full_url in full_urls:
            issues.append(f"fatal: duplicate fullUrl '{full_url}'.")
        else:
            full_urls.add(full_url)

        if not isinstance(resource, dict):
            issues.append(f"fatal: bundle.entry[{index}].resource must be an object.")
            continue
        resource_type = resource.get("resourceType")
        if not isinstance(resource_type, str) or not resource_type:
            issues.append(f"fatal: bundle.entry[{index}] missing resourceType.")
            continue
        resource_types.add(resource_type)
        if resource_type in SECTION_RESOURCE_TYPES and full_url:
            section_tracked[full_url] = resource_type

    first = entries[0] if isinstance(entries[0], dict) else {}
    composition = first.get("resource") if isinstance(first.get("resource"), dict) else {}
    if composition.get("resourceType") != "Composition":
        issues.append("fatal: first bundle entry must be the Composition.")
        composition = {}

    for required in ("Composition", "Patient"):
        if required not in resource_types:
            issues.append(f"fatal: missing required resource type '{required}'.")

    unresolved = _collect_references(bundle) - full_urls
    for ref in sorted(unresolved):
        issues.append(f"fatal: unresolved internal reference '{ref}'.")

    if composition:
        in_sections = _section_references(composition)
        for ref in sorted(set(section_tracked) - in_sections):
            issues.append(
                f"fatal: {section_tracked[ref]} '{ref}' has no Composition section entry."
            )

    return issues
