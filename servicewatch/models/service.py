"""
ServiceWatch - Service Records

Services travel as plain JSON dictionaries, exactly as the backend reports
them. These helpers read the nested port and client collections and merge a
detail payload onto a previously known record.
"""

from typing import Any, Dict, Iterable, List, Optional

from servicewatch.models.keys import ServiceId


ServiceRecord = Dict[str, Any]


def same_id(left: Any, right: Any) -> bool:
    """
    Compare service ids across int/str representations.

    The list endpoint reports numeric ids while ids parsed from a URL or the
    command line arrive as strings.
    """
    if left is None or right is None:
        return False
    return str(left) == str(right)


def find_service(services: Iterable[ServiceRecord], service_id: ServiceId) -> Optional[ServiceRecord]:
    """Return the first record whose id matches, or None."""
    for service in services:
        if same_id(service.get("id"), service_id):
            return service
    return None


def inbound_tags(service: ServiceRecord) -> List[str]:
    """
    Tags of every inbound port in the service detail.

    Records without a tag are skipped; duplicates keep their first position.
    """
    tags: List[str] = []
    for inbound in service.get("inbound_traffics") or []:
        tag = inbound.get("tag") if isinstance(inbound, dict) else None
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def client_emails(service: ServiceRecord) -> List[str]:
    """Emails of every client in the service detail, in reported order."""
    emails: List[str] = []
    for client in service.get("client_traffics") or []:
        email = client.get("email") if isinstance(client, dict) else None
        if email and email not in emails:
            emails.append(email)
    return emails


def merge_service_detail(base: Optional[ServiceRecord], payload: ServiceRecord) -> ServiceRecord:
    """
    Shallow-merge a detail payload onto a known service record.

    Keys present in the payload win, including explicit None values. Keys
    missing from the payload keep the base value. Neither argument is
    mutated; the result is a new dictionary.

    Args:
        base: Previously known record (list entry or earlier selection)
        payload: Fresh detail payload from the backend

    Returns:
        Merged service record
    """
    merged: ServiceRecord = dict(base or {})
    merged.update(payload)
    return merged
