# backend/linklian/tests/unit/test_validation_token.py

from datetime import timedelta

import jwt
import pytest

from linklian.core.exceptions import (
    ImportDataChangedError,
    ValidationTokenExpiredError,
    ValidationTokenInstitutionError,
    ValidationTokenInvalidError,
    ValidationTokenScopeError,
    ValidationTokenTypeError,
)
from linklian.services.imports import (
    ImportType,
    ImportValidationPayload,
    ValidationTokenService,
    calculate_data_hash,
)

SECRET = "unit-test-secret"
ROWS = [
    {"รหัสนักเรียน": "1001", "รหัสวิชา": "A101", "กลุ่มเรียน": "S1"},
    {"รหัสนักเรียน": "1002", "รหัสวิชา": "B202", "กลุ่มเรียน": "S2"},
]


@pytest.fixture
def service():
    return ValidationTokenService(secret_key=SECRET)


def issue(service, rows=ROWS, **overrides):
    payload = ImportValidationPayload(
        inst_id=overrides.pop("inst_id", 1),
        type=overrides.pop("type", ImportType.ENROLLMENT),
        valid_count=len(rows),
        **overrides,
    )
    return service.issue(payload, rows)


def test_data_hash_is_stable_and_order_sensitive():
    assert calculate_data_hash(ROWS) == calculate_data_hash([dict(r) for r in ROWS])
    assert calculate_data_hash(ROWS) != calculate_data_hash(list(reversed(ROWS)))


def test_data_hash_changes_with_a_single_cell():
    mutated = [dict(ROWS[0]), dict(ROWS[1])]
    mutated[1]["รหัสนักเรียน"] = "1003"
    assert calculate_data_hash(mutated) != calculate_data_hash(ROWS)


def test_issued_token_carries_camel_case_claims(service):
    token = issue(service, section_id=7)
    claims = jwt.decode(token, SECRET, algorithms=["HS256"])

    assert claims["instId"] == 1
    assert claims["sectionId"] == 7
    assert claims["type"] == "enrollment"
    assert claims["dataHash"] == calculate_data_hash(ROWS)
    assert claims["validCount"] == 2
    assert "exp" in claims


def test_verify_accepts_matching_request(service):
    token = issue(service, section_id=7)
    payload = service.verify(token, ImportType.ENROLLMENT, 1, ROWS, section_id=7)
    assert payload.section_id == 7


def test_verify_rejects_expired_token():
    expired = ValidationTokenService(secret_key=SECRET, expires_delta=timedelta(seconds=-5))
    token = issue(expired)

    with pytest.raises(ValidationTokenExpiredError) as exc_info:
        expired.verify(token, ImportType.ENROLLMENT, 1, ROWS)
    assert exc_info.value.status_code == 401


def test_verify_rejects_foreign_signature(service):
    token = issue(ValidationTokenService(secret_key="someone-else"))
    with pytest.raises(ValidationTokenInvalidError):
        service.verify(token, ImportType.ENROLLMENT, 1, ROWS)


def test_verify_rejects_garbage(service):
    with pytest.raises(ValidationTokenInvalidError):
        service.verify("not-a-token", ImportType.ENROLLMENT, 1, ROWS)


def test_verify_rejects_wrong_import_type(service):
    token = issue(service, type=ImportType.PROGRAM)
    with pytest.raises(ValidationTokenTypeError):
        service.verify(token, ImportType.ENROLLMENT, 1, ROWS)


def test_verify_rejects_other_institution(service):
    token = issue(service)
    with pytest.raises(ValidationTokenInstitutionError):
        service.verify(token, ImportType.ENROLLMENT, 2, ROWS)


def test_verify_rejects_other_semester(service):
    token = issue(service, type=ImportType.SECTION_SCHEDULE, semester_id=3)
    with pytest.raises(ValidationTokenScopeError):
        service.verify(token, ImportType.SECTION_SCHEDULE, 1, ROWS, semester_id=4)


def test_type_is_checked_before_the_hash(service):
    token = issue(service, type=ImportType.PROGRAM)
    with pytest.raises(ValidationTokenTypeError):
        service.verify(token, ImportType.ENROLLMENT, 1, ROWS[:1])


def test_verify_rejects_changed_rows(service):
    token = issue(service)
    mutated = [dict(ROWS[0]), {**ROWS[1], "กลุ่มเรียน": "S9"}]

    with pytest.raises(ImportDataChangedError) as exc_info:
        service.verify(token, ImportType.ENROLLMENT, 1, mutated)
    assert exc_info.value.status_code == 400


def test_verify_rejects_other_institution_type(service):
    token = issue(service, type=ImportType.STUDENT, inst_type="school")

    service.verify(token, ImportType.STUDENT, 1, ROWS, inst_type="school")
    with pytest.raises(ValidationTokenScopeError):
        service.verify(token, ImportType.STUDENT, 1, ROWS, inst_type="university")
