"""Intake workflow: creates one customer's record graph in dependency order.

Orchestrates the signup flow:
1. Validation: required fields, optional verified-address check
2. Pre-checks: email not already registered, situs address not already registered
3. Creation: identity -> profile -> contact -> owner -> property -> application -> protest
4. Compensation: on a failed step, undo the completed steps newest first
5. Side effects: form generation jobs and referral linking, best-effort

An existing customer adding another property skips the email pre-check and
identity creation but otherwise runs the same creation steps.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from taxprotest.domain.intake.compensation import CompensationLog
from taxprotest.domain.intake.exceptions import (
    DuplicatePropertyError,
    EmailExistsAuthenticatedError,
    EmailExistsPendingError,
    IntakeStepError,
    MissingPlaceIdError,
    MissingRequiredFieldsError,
    ProfileNotFoundError,
)
from taxprotest.domain.intake.settings import IntakeSettings
from taxprotest.domain.intake.submission import (
    REQUIRED_FOR_EXISTING_CUSTOMER,
    REQUIRED_FOR_NEW_CUSTOMER,
    IntakeSubmission,
)
from taxprotest.domain.protest.status import ProtestStatus
from taxprotest.domain.records import Table, validate_creation_plan
from taxprotest.foundation.domain.customer_value_objects import Email, SitusAddress
from taxprotest.foundation.domain.exceptions import ValidationError
from taxprotest.foundation.domain.ports import (
    Filter,
    IdentityProviderError,
    JobDispatchError,
    StoreError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from taxprotest.foundation.domain.ports import (
        IdentityProviderPort,
        JobDispatcherPort,
        Record,
        RecordStorePort,
    )

logger = logging.getLogger(__name__)

NEW_CUSTOMER_PLAN: tuple[Table, ...] = (
    Table.PROFILES,
    Table.CONTACTS,
    Table.OWNERS,
    Table.PROPERTIES,
    Table.APPLICATIONS,
    Table.PROTESTS,
)
EXISTING_CUSTOMER_PLAN: tuple[Table, ...] = NEW_CUSTOMER_PLAN[1:]

validate_creation_plan(NEW_CUSTOMER_PLAN)

NEW_CUSTOMER_MESSAGE = (
    "Application submitted successfully! Please check your email to confirm "
    "your account and set your password."
)
EXISTING_CUSTOMER_MESSAGE = "Property added successfully! Redirecting to your dashboard."

CONTACT_SOURCE = "property_signup"
APPLICATION_STATUS = "submitted"

_STEP_FAILURES = (StoreError, IdentityProviderError)
_EDITABLE_PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "role",
    "is_trust_entity",
    "agree_to_updates",
)


@dataclass(frozen=True, slots=True)
class IntakeResult:
    """Outcome of a successful intake.

    Attributes:
        user_id: Identity id of the customer.
        profile_id: Row id of the customer's profile.
        property_id: Row id of the created property.
        requires_email_confirmation: True when a new identity was created and
            the customer must confirm their email before signing in.
        message: Human-readable confirmation.
        redirect_to: Where the caller should send the customer next, if anywhere.
    """

    user_id: str
    profile_id: str
    property_id: str
    requires_email_confirmation: bool
    message: str
    redirect_to: str | None = None


@dataclass(frozen=True, slots=True)
class OwnerIdentity:
    """Name and type recorded on the owner row."""

    name: str
    owner_type: str


def derive_owner(submission: IntakeSubmission) -> OwnerIdentity:
    """Work out who owns the property.

    Trusts and other entities are named after the entity when a name was given;
    their type is the lower-cased entity type, or ``entity`` when none was
    given. Everyone else is an ``individual`` named "First Last".
    """
    if submission.is_trust_entity:
        return OwnerIdentity(
            name=submission.entity_name or submission.display_name,
            owner_type=(submission.entity_type or "entity").lower(),
        )
    return OwnerIdentity(name=submission.display_name, owner_type="individual")


def _temporary_password() -> str:
    return f"Tmp-{secrets.token_urlsafe(18)}!"


class IntakeWorkflow:
    """Creates customer record graphs against the record store.

    Attributes:
        _store: Record store holding every customer table.
        _identity: Identity service issuing login identities.
        _jobs: Dispatcher for post-intake jobs.
        _settings: Intake behaviour switches.
    """

    def __init__(
        self,
        store: RecordStorePort,
        identity: IdentityProviderPort,
        jobs: JobDispatcherPort,
        settings: IntakeSettings | None = None,
    ) -> None:
        self._store = store
        self._identity = identity
        self._jobs = jobs
        self._settings = settings or IntakeSettings()

    def submit(self, submission: IntakeSubmission, *, origin: str | None = None) -> IntakeResult:
        """Register a new customer and their first property.

        Args:
            submission: The signup form contents.
            origin: Origin of the calling site, used for the confirmation link.

        Returns:
            IntakeResult with the new ids; ``requires_email_confirmation`` is True.

        Raises:
            MissingRequiredFieldsError: If email, names or address are missing.
            MissingPlaceIdError: If verified addresses are required and absent.
            ValidationError: If the email or address is malformed.
            EmailExistsAuthenticatedError: If the email belongs to an active account.
            EmailExistsPendingError: If the email belongs to an unconfirmed account.
            DuplicatePropertyError: If the situs address is already registered.
            IntakeStepError: If a creation step fails.
        """
        self._validate(submission, REQUIRED_FOR_NEW_CUSTOMER)
        email = self._parse_email(submission.email)
        self._ensure_email_available(email)
        self._ensure_address_available(submission.address)

        logger.info(
            "intake_started",
            extra={"email": email.value, "situs_address": submission.address},
        )
        compensations = CompensationLog()
        try:
            user_id: str = self._step(
                compensations,
                "create_identity",
                lambda: self._identity.create_identity(
                    email.value,
                    _temporary_password(),
                    {"first_name": submission.first_name, "last_name": submission.last_name},
                    redirect_to=self._settings.confirmation_url(origin),
                ),
                undo=self._identity.remove_identity,
            )
            profile: Record = self._step(
                compensations,
                "upsert_profile",
                lambda: self._store.upsert(
                    Table.PROFILES,
                    self._profile_record(user_id, email, submission),
                    on_conflict="user_id",
                ),
                undo=lambda _row: self._store.delete(
                    Table.PROFILES, Filter.eq("user_id", user_id)
                ),
            )
            property_row = self._create_property_graph(
                user_id, email.value, submission, compensations
            )
        except IntakeStepError:
            raise
        except Exception:
            logger.exception("intake_failed_unexpectedly", extra={"email": email.value})
            self._unwind(compensations)
            raise

        compensations.discard()
        self._run_side_effects(user_id, property_row["id"], email.value, submission)
        logger.info(
            "intake_completed",
            extra={"user_id": user_id, "property_id": property_row["id"]},
        )
        return IntakeResult(
            user_id=user_id,
            profile_id=str(profile["id"]),
            property_id=str(property_row["id"]),
            requires_email_confirmation=True,
            message=NEW_CUSTOMER_MESSAGE,
        )

    def add_property(
        self,
        user_id: str,
        submission: IntakeSubmission,
        *,
        origin: str | None = None,
    ) -> IntakeResult:
        """Register another property for an existing customer.

        The customer's editable profile fields are refreshed from the
        submission; on failure they are restored along with the other steps.

        Raises:
            MissingRequiredFieldsError: If names or address are missing.
            ProfileNotFoundError: If ``user_id`` has no profile.
            DuplicatePropertyError: If the situs address is already registered.
            IntakeStepError: If a creation step fails.
        """
        self._validate(submission, REQUIRED_FOR_EXISTING_CUSTOMER)
        profile = self._load_profile(user_id)
        self._ensure_address_available(submission.address)
        email = (submission.email or str(profile.get("email") or "")).lower()

        logger.info(
            "intake_started",
            extra={"user_id": user_id, "situs_address": submission.address, "existing": True},
        )
        previous = {field: profile.get(field) for field in _EDITABLE_PROFILE_FIELDS}
        where = Filter.eq("user_id", user_id)
        compensations = CompensationLog()
        try:
            self._step(
                compensations,
                "update_profile",
                lambda: self._store.update(
                    Table.PROFILES, self._profile_changes(submission), where
                ),
                undo=lambda _rows: self._store.update(Table.PROFILES, previous, where),
            )
            property_row = self._create_property_graph(user_id, email, submission, compensations)
        except IntakeStepError:
            raise
        except Exception:
            logger.exception("intake_failed_unexpectedly", extra={"user_id": user_id})
            self._unwind(compensations)
            raise

        compensations.discard()
        self._run_side_effects(user_id, property_row["id"], email, submission)
        logger.info(
            "intake_completed",
            extra={"user_id": user_id, "property_id": property_row["id"], "existing": True},
        )
        return IntakeResult(
            user_id=user_id,
            profile_id=str(profile["id"]),
            property_id=str(property_row["id"]),
            requires_email_confirmation=False,
            message=EXISTING_CUSTOMER_MESSAGE,
            redirect_to=self._settings.portal_url(origin),
        )

    # -- validation and pre-checks ------------------------------------------

    def _validate(self, submission: IntakeSubmission, required: tuple[str, ...]) -> None:
        missing = submission.missing_fields(required)
        if missing:
            raise MissingRequiredFieldsError(missing)
        if self._settings.require_place_id and (
            not submission.place_id or len(submission.formatted_address or "") < 10
        ):
            raise MissingPlaceIdError()
        try:
            SitusAddress(submission.address)
        except ValueError as exc:
            raise ValidationError("address", str(exc)) from exc

    @staticmethod
    def _parse_email(raw: str) -> Email:
        try:
            return Email(raw)
        except ValueError as exc:
            raise ValidationError("email", str(exc)) from exc

    def _lookup(
        self,
        step: str,
        table: Table,
        where: Filter,
        columns: tuple[str, ...],
    ) -> list[Record]:
        try:
            return self._store.select(table, where, columns=columns)
        except StoreError as exc:
            logger.error("intake_lookup_failed", extra={"step": step, "reason": str(exc)})
            raise IntakeStepError(step, str(exc)) from exc

    def _ensure_email_available(self, email: Email) -> None:
        rows = self._lookup(
            "check_email",
            Table.PROFILES,
            Filter.eq("email", email.value),
            ("user_id", "is_authenticated"),
        )
        if not rows:
            return
        if any(row.get("is_authenticated") for row in rows):
            raise EmailExistsAuthenticatedError(email.value)
        raise EmailExistsPendingError(email.value)

    def _ensure_address_available(self, address: str) -> None:
        rows = self._lookup(
            "check_address",
            Table.PROPERTIES,
            Filter.eq("situs_address", address),
            ("id",),
        )
        if rows:
            raise DuplicatePropertyError(address)

    def _load_profile(self, user_id: str) -> Record:
        rows = self._lookup(
            "load_profile",
            Table.PROFILES,
            Filter.eq("user_id", user_id),
            ("id", "email", *_EDITABLE_PROFILE_FIELDS),
        )
        if not rows:
            raise ProfileNotFoundError(user_id)
        return rows[0]

    # -- creation steps -----------------------------------------------------

    def _step(
        self,
        compensations: CompensationLog,
        name: str,
        call: Callable[[], Any],
        *,
        undo: Callable[[Any], object] | None = None,
    ) -> Any:
        """Run one creation step and register its undo action."""
        try:
            value = call()
        except _STEP_FAILURES as exc:
            error = IntakeStepError(name, str(exc))
            failures = self._unwind(compensations)
            error.compensated = self._settings.compensate_on_failure and not failures
            error.compensation_failures = tuple(failures)
            logger.error(
                "intake_step_failed",
                extra={"step": name, "reason": str(exc), "compensated": error.compensated},
            )
            raise error from exc
        if undo is not None:
            compensations.register(f"undo_{name}", lambda: undo(value))
        logger.debug("intake_step_completed", extra={"step": name})
        return value

    def _unwind(self, compensations: CompensationLog) -> list[str]:
        if not self._settings.compensate_on_failure:
            logger.warning(
                "intake_partial_records_left",
                extra={"completed_steps": compensations.pending},
            )
            compensations.discard()
            return []
        return compensations.unwind()

    def _insert(
        self,
        compensations: CompensationLog,
        step: str,
        table: Table,
        record: dict[str, Any],
    ) -> Record:
        row: Record = self._step(
            compensations,
            step,
            lambda: self._store.insert(table, record),
            undo=lambda inserted: self._store.delete(table, Filter.eq("id", inserted["id"])),
        )
        return row

    def _create_property_graph(
        self,
        user_id: str,
        email: str,
        submission: IntakeSubmission,
        compensations: CompensationLog,
    ) -> Record:
        contact = self._insert(
            compensations, "insert_contact", Table.CONTACTS, self._contact_record(email, submission)
        )
        owner = self._insert(
            compensations, "insert_owner", Table.OWNERS, self._owner_record(user_id, submission)
        )
        property_row = self._insert(
            compensations,
            "insert_property",
            Table.PROPERTIES,
            self._property_record(user_id, owner["id"], contact["id"], submission),
        )
        self._insert(
            compensations,
            "insert_application",
            Table.APPLICATIONS,
            {
                "user_id": user_id,
                "property_id": property_row["id"],
                "signature": submission.signature,
                "is_owner_verified": True,
                "status": APPLICATION_STATUS,
                "signup_pid": submission.signup_pid,
            },
        )
        self._insert(
            compensations,
            "insert_protest",
            Table.PROTESTS,
            {
                "property_id": property_row["id"],
                "appeal_status": ProtestStatus.PENDING.value,
                "exemption_status": "pending",
                "savings_amount": submission.estimated_savings or 0,
            },
        )
        return property_row

    # -- record builders ----------------------------------------------------

    @staticmethod
    def _profile_record(user_id: str, email: Email, submission: IntakeSubmission) -> dict[str, Any]:
        return {
            "user_id": user_id,
            "email": email.value,
            "first_name": submission.first_name,
            "last_name": submission.last_name,
            "phone": submission.phone,
            "role": submission.role,
            "is_trust_entity": submission.is_trust_entity,
            "agree_to_updates": submission.agree_to_updates,
            "is_authenticated": False,
        }

    @staticmethod
    def _profile_changes(submission: IntakeSubmission) -> dict[str, Any]:
        changes: dict[str, Any] = {
            "first_name": submission.first_name,
            "last_name": submission.last_name,
            "role": submission.role,
            "is_trust_entity": submission.is_trust_entity,
            "agree_to_updates": submission.agree_to_updates,
        }
        if submission.phone:
            changes["phone"] = submission.phone
        return changes

    @staticmethod
    def _contact_record(email: str, submission: IntakeSubmission) -> dict[str, Any]:
        return {
            "first_name": submission.first_name,
            "last_name": submission.last_name,
            "email": email or None,
            "phone": submission.phone,
            "company": submission.entity_name if submission.is_trust_entity else None,
            "source": CONTACT_SOURCE,
            "status": "active",
            "notes": f"Primary contact for property at {submission.address}",
        }

    def _owner_record(self, user_id: str, submission: IntakeSubmission) -> dict[str, Any]:
        owner = derive_owner(submission)
        county = submission.county
        return {
            "name": owner.name,
            "owner_type": owner.owner_type,
            "created_by_user_id": user_id,
            "entity_relationship": submission.relationship_to_entity,
            "form_entity_name": submission.entity_name,
            "form_entity_type": submission.entity_type,
            "notes": f"Relationship to property: {submission.role}",
            "mailing_address": submission.formatted_address or submission.address,
            "mailing_city": county.removesuffix(" County").strip() if county else None,
            "mailing_state": self._settings.mailing_state,
        }

    @staticmethod
    def _property_record(
        user_id: str,
        owner_id: str,
        contact_id: str,
        submission: IntakeSubmission,
    ) -> dict[str, Any]:
        return {
            "user_id": user_id,
            "owner_id": owner_id,
            "contact_id": contact_id,
            "situs_address": submission.address,
            "parcel_number": submission.parcel_number,
            "estimated_savings": submission.estimated_savings,
            "include_all_properties": submission.include_all_properties,
            "place_id": submission.place_id,
            "formatted_address": submission.formatted_address or submission.address,
            "google_address_components": submission.address_components,
            "latitude": submission.latitude,
            "longitude": submission.longitude,
            "county": submission.county,
        }

    # -- side effects -------------------------------------------------------

    def _run_side_effects(
        self,
        user_id: str,
        property_id: str,
        email: str,
        submission: IntakeSubmission,
    ) -> None:
        self._dispatch_documents(user_id, property_id)
        if submission.referral_code:
            self._link_referral(user_id, email, submission)

    def _dispatch_documents(self, user_id: str, property_id: str) -> None:
        payload = {"propertyId": property_id, "userId": user_id}
        for job_name in self._settings.document_jobs:
            try:
                self._jobs.invoke_async_job(job_name, payload)
            except JobDispatchError as exc:
                logger.warning(
                    "intake_document_job_failed",
                    extra={"job": job_name, "property_id": property_id, "reason": exc.reason},
                )
            else:
                logger.info(
                    "intake_document_job_dispatched",
                    extra={"job": job_name, "property_id": property_id},
                )

    def _link_referral(self, user_id: str, email: str, submission: IntakeSubmission) -> None:
        code = submission.referral_code
        try:
            referrers = self._store.select(
                Table.PROFILES,
                Filter.eq("referral_code", code),
                columns=("user_id", "email"),
            )
            if not referrers:
                logger.info("intake_referral_code_unknown", extra={"referral_code": code})
                return
            referrer = referrers[0]
            if email and Email(email).matches(referrer.get("email")):
                logger.info("intake_self_referral_ignored", extra={"user_id": user_id})
                return
            self._store.insert(
                Table.REFERRAL_RELATIONSHIPS,
                {
                    "referrer_id": referrer["user_id"],
                    "referee_id": user_id,
                    "referral_code": code,
                    "referee_email": email or None,
                    "referee_first_name": submission.first_name,
                    "referee_last_name": submission.last_name,
                    "status": "completed",
                },
            )
        except (StoreError, ValueError) as exc:
            logger.warning(
                "intake_referral_link_failed",
                extra={"referral_code": code, "user_id": user_id, "reason": str(exc)},
            )
        else:
            logger.info(
                "intake_referral_linked",
                extra={"referral_code": code, "referrer_id": referrer["user_id"]},
            )
