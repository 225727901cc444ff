"""
Tests de normalizacion de telefonos y de la politica de sobrescritura.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import pytest

from crm_sync.application.services.backfill.contact_matcher import (
    ContactMatcher,
    MatchOutcome,
    is_source_overwritable,
)
from crm_sync.domain.entities.contact import ExternalContact, LocalContact
from crm_sync.domain.repositories.contact_repository import IContactRepository
from crm_sync.shared.utils.phone import normalize_phone, phone_candidates


class InMemoryContacts(IContactRepository):
    def __init__(self, contacts: List[LocalContact]) -> None:
        self.rows: Dict[str, LocalContact] = {c.id: c for c in contacts}
        self.phone_lookups: List[List[str]] = []

    def find_by_phones(self, candidates: Iterable[str]) -> Optional[LocalContact]:
        values = list(candidates)
        self.phone_lookups.append(values)
        return next((c for c in self.rows.values() if c.phone in values), None)

    def find_by_email(self, email: str) -> Optional[LocalContact]:
        return next((c for c in self.rows.values() if c.email == email), None)

    def update_source_if_unowned(self, contact_id: str, new_source: str, own_tag: str) -> bool:
        current = self.rows[contact_id]
        if not is_source_overwritable(current.source, own_tag):
            return False
        self.rows[contact_id] = LocalContact(current.id, current.phone, current.email, new_source)
        return True


def test_normalization_strips_formatting_and_country_code() -> None:
    assert normalize_phone("+55 (11) 91234-5678") == normalize_phone("11912345678")
    assert normalize_phone("(11) 3456-7890") == "1134567890"
    assert normalize_phone(None) == ""


def test_short_candidates_are_never_used() -> None:
    assert phone_candidates("123-45") == []
    assert phone_candidates("+55 1234") == []
    assert phone_candidates("+55 (11) 91234-5678") == [
        "11912345678",
        "5511912345678",
        "+55 (11) 91234-5678",
    ]
    assert phone_candidates("11912345678") == ["11912345678"]


@pytest.mark.parametrize("protected", ["other_system", "manual"])
def test_meaningful_source_is_never_overwritten(protected: str) -> None:
    repo = InMemoryContacts([LocalContact("c1", "11912345678", "a@x.com", protected)])
    matcher = ContactMatcher(repo, own_tag="rd_crm")

    outcome = matcher.apply(ExternalContact("e1", "Ana", phones=["11 91234-5678"]), "Google Ads")

    assert outcome is MatchOutcome.PROTECTED
    assert repo.rows["c1"].source == protected


@pytest.mark.parametrize("current", [None, "", "  ", "rd_crm"])
def test_empty_or_own_tag_is_overwritten(current: Optional[str]) -> None:
    repo = InMemoryContacts([LocalContact("c1", "11912345678", None, current)])
    matcher = ContactMatcher(repo, own_tag="rd_crm")

    outcome = matcher.apply(ExternalContact("e1", "Ana", phones=["+55 11 91234-5678"]), "Facebook")

    assert outcome is MatchOutcome.UPDATED
    assert repo.rows["c1"].source == "Facebook"


def test_email_is_used_when_no_phone_matches() -> None:
    repo = InMemoryContacts([LocalContact("c1", None, "ana@example.com", None)])
    matcher = ContactMatcher(repo, own_tag="rd_crm")

    contact = ExternalContact("e1", "Ana", phones=["1234", "11999990000"], emails=["ana@example.com"])
    outcome = matcher.apply(contact, "Site")

    assert outcome is MatchOutcome.UPDATED
    # El telefono corto ni siquiera se consulta
    assert repo.phone_lookups == [["11999990000"]]


def test_protected_phone_match_falls_back_to_email() -> None:
    repo = InMemoryContacts([
        LocalContact("by-phone", "11912345678", None, "manual"),
        LocalContact("by-email", None, "ana@example.com", None),
    ])
    matcher = ContactMatcher(repo, own_tag="rd_crm")

    contact = ExternalContact("e1", "Ana", phones=["11912345678"], emails=["ana@example.com"])

    assert matcher.apply(contact, "Site") is MatchOutcome.UPDATED
    assert repo.rows["by-email"].source == "Site"
    assert repo.rows["by-phone"].source == "manual"


def test_protected_phone_match_without_email_hit_stays_protected() -> None:
    repo = InMemoryContacts([LocalContact("by-phone", "11912345678", None, "manual")])
    matcher = ContactMatcher(repo, own_tag="rd_crm")

    contact = ExternalContact("e1", "Ana", phones=["11912345678"], emails=["nadie@example.com"])

    assert matcher.apply(contact, "Site") is MatchOutcome.PROTECTED
    assert repo.rows["by-phone"].source == "manual"


def test_no_match_when_nothing_found() -> None:
    matcher = ContactMatcher(InMemoryContacts([]), own_tag="rd_crm")

    assert matcher.apply(ExternalContact("e1", "X", phones=["11900001111"]), "Site") is MatchOutcome.NO_MATCH


def test_external_contact_payload_parsing() -> None:
    contact = ExternalContact.from_payload({
        "_id": "abc",
        "name": " Ana ",
        "phones": [{"phone": "11 91234-5678"}, {"phone": None}, "junk"],
        "emails": [{"email": "ana@example.com "}],
    })

    assert contact.external_id == "abc"
    assert contact.display_name == "Ana"
    assert contact.phones == ["11 91234-5678"]
    assert contact.emails == ["ana@example.com"]
