"""Service for the customer bonus ledger.

Accounts are matched by normalized phone (digits only). The table has no
column for the normalized form, so every lookup scans the accounts and
compares digits in memory. That is fine for a shop-sized customer base and
is the known scalability ceiling of this service. An index on the raw
phone_number column would match on formatting rather than on digits.
"""

from __future__ import annotations

import logging
from typing import Any

from asgiref.sync import sync_to_async
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..auth import AdminContext
from ..exceptions import AmbiguousMatch, Conflict, NotFound, StorefrontError, ValidationFailed
from ..models import BonusAccount, PendingBonus
from ..phone import format_phone, normalize_phone, phones_match
from ..signals import bonus_account_renamed, bonuses_credited, bonuses_deducted

logger = logging.getLogger(__name__)


def _require_digits(phone: str | None) -> str:
    digits = normalize_phone(phone)
    if not digits:
        raise ValidationFailed("Phone number is required")
    return digits


def _require_amount(amount: Any, allow_zero: bool) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationFailed("Bonus amount must be an integer")
    if amount < 0 or (amount == 0 and not allow_zero):
        qualifier = "non-negative" if allow_zero else "positive"
        raise ValidationFailed(f"Bonus amount must be {qualifier}")
    return amount


class BonusService:
    """Service for looking up and adjusting bonus accounts."""

    @classmethod
    def _match_digits(cls, digits: str) -> BonusAccount | None:
        matches = [
            account
            for account in BonusAccount.objects.order_by("pk").iterator()
            if phones_match(account.phone_number, digits)
        ]
        if not matches:
            return None
        if len(matches) > 1:
            ids = [account.pk for account in matches]
            logger.warning(f"Phone digits {digits} match several bonus accounts: {ids}")
            raise AmbiguousMatch(
                "Several bonus accounts match this phone number",
                account_ids=ids,
            )
        return matches[0]

    @classmethod
    def find_account(cls, phone: str) -> BonusAccount | None:
        """
        Finds the account whose phone has the same digits as `phone`.

        Args:
            phone: Phone in any format.

        Returns:
            The matching account or None.

        Raises:
            ValidationFailed: If the phone has no digits.
            AmbiguousMatch: If more than one account matches.
        """
        return cls._match_digits(_require_digits(phone))

    @classmethod
    def get_account(cls, phone: str) -> BonusAccount:
        """Same as find_account, but a miss raises NotFound."""
        account = cls.find_account(phone)
        if account is None:
            raise NotFound("Customer not found in bonus system")
        return account

    @classmethod
    def list_accounts(cls) -> list[BonusAccount]:
        return list(BonusAccount.objects.order_by("-created_at"))

    @classmethod
    def update_name(cls, phone: str, full_name: str, actor: AdminContext) -> BonusAccount:
        """
        Overwrites the customer's full name (last write wins).

        The stored display phone is kept even when `phone` is formatted differently.

        Raises:
            ValidationFailed: Blank phone or blank name (checked before lookup).
            NotFound: No account matches the phone.
            AmbiguousMatch: Several accounts match the phone.
        """
        name = (full_name or "").strip()
        if not normalize_phone(phone) or not name:
            raise ValidationFailed("Phone number and full name are required")

        account = cls.get_account(phone)
        BonusAccount.objects.filter(pk=account.pk).update(full_name=name, updated_at=timezone.now())
        account.refresh_from_db()

        logger.info(f"Bonus account {account.pk} renamed by {actor}")
        bonus_account_renamed.send(sender=cls, account=account, actor=actor)
        return account

    @classmethod
    def credit(
        cls,
        phone: str,
        amount: int,
        actor: AdminContext | None = None,
        full_name: str | None = None,
        source: str = "manual",
    ) -> BonusAccount:
        """
        Adds bonuses to the customer's account, creating the account if needed.

        A new account stores the phone in display format when formatting keeps
        its digits, and as given otherwise. An existing account
        gets `full_name` only if it has none yet.

        Args:
            phone: Phone in any format.
            amount: Non-negative number of bonuses.
            actor: Who is crediting; None for system jobs.
            full_name: Optional customer name.
            source: Label passed on with the bonuses_credited signal.

        Raises:
            ValidationFailed: Blank phone or invalid amount.
            AmbiguousMatch: Several accounts match the phone.
            Conflict: A new account would collide with a stored display phone.
        """
        digits = _require_digits(phone)
        amount = _require_amount(amount, allow_zero=True)
        name = (full_name or "").strip() or None
        now = timezone.now()

        account = cls.find_account(phone)
        if account is None:
            display_phone = format_phone(phone.strip())
            if normalize_phone(display_phone) != digits:
                # "8..." and 10-digit input would change digits when formatted
                display_phone = phone.strip()
            try:
                with transaction.atomic():
                    account = BonusAccount.objects.create(
                        phone_number=display_phone,
                        full_name=name,
                        total_bonuses=amount,
                        used_bonuses=0,
                        available_bonuses=amount,
                        last_updated=now,
                    )
            except IntegrityError:
                raise Conflict(
                    f"A bonus account with phone {display_phone} already exists",
                    phone_number=display_phone,
                )
            logger.info(f"Bonus account {account.pk} created with {amount} bonuses ({source})")
        else:
            updates: dict[str, Any] = {
                "total_bonuses": F("total_bonuses") + amount,
                "available_bonuses": F("available_bonuses") + amount,
                "last_updated": now,
                "updated_at": now,
            }
            if name and not account.full_name:
                updates["full_name"] = name
            BonusAccount.objects.filter(pk=account.pk).update(**updates)
            account.refresh_from_db()
            logger.info(f"Credited {amount} bonuses to account {account.pk} ({source})")

        bonuses_credited.send(sender=cls, account=account, amount=amount, source=source, actor=actor)
        return account

    @classmethod
    def deduct(cls, phone: str, amount: int, actor: AdminContext) -> BonusAccount:
        """
        Spends bonuses from the customer's account.

        The balance check and the write are one conditional UPDATE, so two
        concurrent deductions cannot overdraw the account.

        Raises:
            ValidationFailed: Blank phone, non-positive amount or insufficient balance.
            NotFound: No account matches the phone.
        """
        _require_digits(phone)
        amount = _require_amount(amount, allow_zero=False)
        account = cls.get_account(phone)
        now = timezone.now()

        updated = BonusAccount.objects.filter(
            pk=account.pk, available_bonuses__gte=amount
        ).update(
            used_bonuses=F("used_bonuses") + amount,
            available_bonuses=F("available_bonuses") - amount,
            last_updated=now,
            updated_at=now,
        )
        account.refresh_from_db()
        if not updated:
            raise ValidationFailed(
                f"Insufficient bonuses. Available: {account.available_bonuses}, Requested: {amount}",
                available=account.available_bonuses,
                requested=amount,
            )

        logger.info(f"Deducted {amount} bonuses from account {account.pk} by {actor}")
        bonuses_deducted.send(sender=cls, account=account, amount=amount, actor=actor)
        return account

    @classmethod
    def pending_summary(cls, phone: str | None = None, name: str | None = None, now=None) -> dict[str, Any]:
        """
        Unprocessed pending bonuses of one customer, split into due and upcoming.

        Args:
            phone: Phone in any format; matched by digits. Takes precedence over name.
            name: Case-insensitive substring of the customer's full name.

        Raises:
            ValidationFailed: Neither phone nor name was given.
        """
        name = (name or "").strip()
        if not normalize_phone(phone) and not name:
            raise ValidationFailed("Phone number or full name is required")
        now = now or timezone.now()

        qs = PendingBonus.objects.filter(is_processed=False).order_by("available_at", "pk")
        if normalize_phone(phone):
            pending = [bonus for bonus in qs if phones_match(bonus.phone_number, phone)]
        else:
            pending = list(qs.filter(full_name__icontains=name))

        available = [bonus for bonus in pending if bonus.is_due(now)]
        upcoming = [bonus for bonus in pending if not bonus.is_due(now)]
        return {
            "available": available,
            "upcoming": upcoming,
            "total_available": sum(bonus.bonus_amount for bonus in available),
            "total_upcoming": sum(bonus.bonus_amount for bonus in upcoming),
        }

    @classmethod
    def pending_stats(cls, now=None) -> dict[str, Any]:
        """
        Processing statistics and unprocessed bonuses grouped by customer.

        Customers are grouped by normalized phone, so differently formatted
        phones of one customer land in one group. Groups are sorted by their
        unprocessed amount, largest first.

        Returns:
            dict: stats (counts and amounts) and pending_customers.
        """
        now = now or timezone.now()
        unprocessed = Q(is_processed=False)
        ready = unprocessed & Q(available_at__lte=now)
        stats = PendingBonus.objects.aggregate(
            total_pending=Count("pk", filter=unprocessed),
            total_processed=Count("pk", filter=Q(is_processed=True)),
            ready_for_processing=Count("pk", filter=ready),
            total_pending_amount=Coalesce(Sum("bonus_amount", filter=unprocessed), 0),
            ready_amount=Coalesce(Sum("bonus_amount", filter=ready), 0),
        )

        per_phone = (
            PendingBonus.objects.filter(unprocessed)
            .values("phone_number")
            .annotate(amount=Sum("bonus_amount"), purchases=Count("pk"))
        )
        customers: dict[str, dict[str, Any]] = {}
        for row in per_phone.order_by("phone_number"):
            group = customers.setdefault(normalize_phone(row["phone_number"]), {
                "phone_number": row["phone_number"],
                "full_name": None,
                "total_bonuses": 0,
                "total_purchases": 0,
                "bonuses": [],
            })
            group["total_bonuses"] += row["amount"]
            group["total_purchases"] += row["purchases"]

        for bonus in PendingBonus.objects.filter(unprocessed).order_by("available_at", "pk"):
            group = customers[normalize_phone(bonus.phone_number)]
            group["full_name"] = group["full_name"] or bonus.full_name
            group["bonuses"].append({
                "sale_reference": bonus.sale_reference,
                "bonus_amount": bonus.bonus_amount,
                "available_at": bonus.available_at,
                "is_ready": bonus.is_due(now),
            })

        pending_customers = sorted(customers.values(), key=lambda group: group["total_bonuses"], reverse=True)
        return {"stats": stats, "pending_customers": pending_customers}

    @classmethod
    def process_pending_bonuses(cls, now=None) -> dict[str, Any]:
        """
        Credits every due, unprocessed pending bonus to its account.

        Each bonus is handled in its own transaction, which first claims the
        row with a conditional UPDATE on is_processed and only then credits.
        A run that finds the row already claimed skips it, so overlapping runs
        credit each bonus once. A bonus that cannot be credited (e.g. its
        phone matches several accounts) is rolled back to unprocessed, logged
        and reported under "failed".

        Returns:
            dict: processed_count, processed items and failed items.
        """
        now = now or timezone.now()
        processed: list[dict[str, Any]] = []
        failed: list[dict[str, Any]] = []

        due = PendingBonus.objects.filter(is_processed=False, available_at__lte=now).order_by("available_at", "pk")
        for pending in due:
            try:
                with transaction.atomic():
                    claimed = PendingBonus.objects.filter(pk=pending.pk, is_processed=False).update(
                        is_processed=True,
                        updated_at=now,
                    )
                    if claimed:
                        cls.credit(
                            pending.phone_number,
                            pending.bonus_amount,
                            full_name=pending.full_name,
                            source="pending_bonus",
                        )
            except (StorefrontError, DatabaseError) as exc:
                logger.error(f"Failed to process pending bonus {pending.pk} for {pending.phone_number}: {exc}")
                failed.append({"id": pending.pk, "phone_number": pending.phone_number, "message": str(exc)})
                continue

            if not claimed:
                logger.warning(f"Pending bonus {pending.pk} already processed by another run, skipped")
                continue
            processed.append({
                "phone_number": pending.phone_number,
                "bonus_amount": pending.bonus_amount,
                "sale_reference": pending.sale_reference,
            })

        logger.info(f"Processed {len(processed)} pending bonuses, {len(failed)} failed")
        return {"processed_count": len(processed), "processed": processed, "failed": failed}

    @classmethod
    async def aget_account(cls, phone: str) -> BonusAccount:
        return await sync_to_async(cls.get_account, thread_sensitive=True)(phone)

    @classmethod
    async def alist_accounts(cls) -> list[BonusAccount]:
        accounts = []
        async for account in BonusAccount.objects.order_by("-created_at").aiterator():
            accounts.append(account)
        return accounts

    @classmethod
    async def aupdate_name(cls, phone: str, full_name: str, actor: AdminContext) -> BonusAccount:
        return await sync_to_async(cls.update_name, thread_sensitive=True)(phone, full_name, actor)

    @classmethod
    async def acredit(cls, *args, **kwargs) -> BonusAccount:
        return await sync_to_async(cls.credit, thread_sensitive=True)(*args, **kwargs)

    @classmethod
    async def adeduct(cls, phone: str, amount: int, actor: AdminContext) -> BonusAccount:
        return await sync_to_async(cls.deduct, thread_sensitive=True)(phone, amount, actor)

    @classmethod
    async def apending_summary(cls, phone: str | None = None, name: str | None = None) -> dict[str, Any]:
        return await sync_to_async(cls.pending_summary, thread_sensitive=True)(phone, name)

    @classmethod
    async def apending_stats(cls) -> dict[str, Any]:
        return await sync_to_async(cls.pending_stats, thread_sensitive=True)()

    @classmethod
    async def aprocess_pending_bonuses(cls) -> dict[str, Any]:
        return await sync_to_async(cls.process_pending_bonuses, thread_sensitive=True)()
