# backend/linklian/services/imports/accounts.py
"""
Common ground for imports that create user accounts (students, teachers).

An account row is a duplicate when its email or its code is already taken
in the institution; both keys are also checked for repeats inside the file.
New accounts get a random initial password, stored hashed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import insert, select

from ...core.security import generate_initial_password, hash_password
from ...models import InstitutionType, UserSys
from ...schemas.imports import AccountRow
from .base import BaseImporter, ParsedRow, norm
from .constants import DEFAULT_USER_STATUS, USER_STATUS_MAP

logger = logging.getLogger(__name__)


@dataclass
class AccountReferences:
    # lower-cased emails and normalized codes already used in the institution
    emails: Set[str] = field(default_factory=set)
    codes: Set[str] = field(default_factory=set)


def map_user_status(value: Optional[str]) -> str:
    return USER_STATUS_MAP.get(norm(value), DEFAULT_USER_STATUS)


class AccountImporter(BaseImporter):
    """Base for student and teacher imports, scoped by institution type."""

    code_label = "Code"

    def token_scope(self, inst_type: InstitutionType = InstitutionType.school, **_: Any) -> Dict[str, Any]:
        return {"inst_type": inst_type.value}

    def account_code(self, row: AccountRow) -> str:
        raise NotImplementedError

    def account_queries(self, inst_id: int) -> Dict[str, Any]:
        # soft-deleted accounts still hold their email and code
        return {
            "accounts": select(UserSys.email, UserSys.code).where(
                UserSys.inst_id == inst_id
            )
        }

    def load_accounts(self, refs: AccountReferences, results: Dict[str, list]) -> None:
        for email, code in results["accounts"]:
            if email:
                refs.emails.add(email.lower())
            if code:
                refs.codes.add(norm(code))

    def occurrence_key(self, parsed: ParsedRow, **_: Any) -> Optional[str]:
        if parsed.model is None:
            return None
        return f"code:{norm(self.account_code(parsed.model))}"

    def occurrence_keys(self, parsed: ParsedRow, **scope: Any) -> Tuple[Optional[str], ...]:
        if parsed.model is None:
            return (None,)
        return (f"email:{parsed.model.email.lower()}", self.occurrence_key(parsed))

    def check_account(
        self,
        parsed: ParsedRow,
        refs: AccountReferences,
        first_seen: Dict[str, int],
        errors: List[str],
        warnings: List[str],
    ) -> bool:
        """Append duplicate findings for email and code; True when the row will be skipped."""
        row = parsed.model
        is_duplicate = False

        if row.email.lower() in refs.emails:
            warnings.append(f"Email {row.email} already exists (will be skipped)")
            is_duplicate = True
        elif first_seen.get(f"email:{row.email.lower()}") != parsed.index:
            errors.append(f"Email {row.email} is repeated in this file")

        code = self.account_code(row)
        if norm(code) in refs.codes:
            warnings.append(f"{self.code_label} {code} already exists (will be skipped)")
            is_duplicate = True
        elif first_seen.get(self.occurrence_key(parsed)) != parsed.index:
            errors.append(f"{self.code_label} {code} is repeated in this file")

        return is_duplicate

    def is_taken(self, row: AccountRow, refs: AccountReferences) -> bool:
        return row.email.lower() in refs.emails or norm(self.account_code(row)) in refs.codes

    async def create_account(
        self,
        row: AccountRow,
        refs: AccountReferences,
        inst_id: int,
        role_id: int,
        edu_lev_id: Optional[int] = None,
    ) -> int:
        code = self.account_code(row)
        user_id = (
            await self.session.execute(
                insert(UserSys)
                .values(
                    email=row.email,
                    password=hash_password(generate_initial_password()),
                    first_name=row.first_name,
                    last_name=row.last_name,
                    phone=row.phone,
                    role_id=role_id,
                    code=code,
                    inst_id=inst_id,
                    edu_lev_id=edu_lev_id,
                    user_status=map_user_status(row.status),
                    flag_valid=True,
                )
                .returning(UserSys.user_sys_id)
            )
        ).scalar_one()
        refs.emails.add(row.email.lower())
        refs.codes.add(norm(code))
        # TODO: deliver the initial password once the mail service exists
        logger.debug(f"Created account {user_id} ({code}) with role {role_id}")
        return user_id
