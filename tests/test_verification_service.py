"""Contact verification codes and single-use booking tokens"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import VerificationFailed
from app.models.contact_verification import ContactVerification
from app.services.verification.verification_service import VerificationService


@pytest.fixture
def verification(db, notifier):
    return VerificationService(db, notifier, code_ttl_minutes=10, token_ttl_minutes=30)


class TestVerificationService:

    def test_issue_code_mails_six_digits(self, db, verification, notifier):
        issued = verification.issue_code("Ana@Example.com", shop_name="Studio Uno")

        assert issued.email == "ana@example.com"
        assert len(issued.code) == 6 and issued.code.isdigit()
        assert notifier.codes == [("ana@example.com", issued.code)]

    def test_new_code_replaces_pending_one(self, db, verification, notifier):
        first = verification.issue_code("ana@example.com").code
        verification.issue_code("ana@example.com")

        assert db.query(ContactVerification).count() == 1
        if first != notifier.codes[-1][1]:
            with pytest.raises(VerificationFailed):
                verification.confirm_code("ana@example.com", first)

    def test_confirm_issues_token(self, verification, notifier):
        verification.issue_code("ana@example.com")

        confirmed = verification.confirm_code("ana@example.com", notifier.codes[-1][1])

        assert confirmed.token
        assert confirmed.verified_at is not None

    def test_wrong_code_is_rejected(self, verification):
        code = verification.issue_code("ana@example.com").code
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(VerificationFailed):
            verification.confirm_code("ana@example.com", wrong)

    def test_expired_code_is_rejected(self, verification):
        code = verification.issue_code("ana@example.com").code
        later = datetime.now(timezone.utc) + timedelta(minutes=11)

        with pytest.raises(VerificationFailed):
            verification.confirm_code("ana@example.com", code, now=later)

    def test_code_cannot_be_confirmed_twice(self, verification):
        code = verification.issue_code("ana@example.com").code
        verification.confirm_code("ana@example.com", code)

        with pytest.raises(VerificationFailed):
            verification.confirm_code("ana@example.com", code)

    def test_token_is_consumed_once(self, db, verification):
        code = verification.issue_code("ana@example.com").code
        token = verification.confirm_code("ana@example.com", code).token

        verification.consume_token("ana@example.com", token)
        db.commit()

        with pytest.raises(VerificationFailed):
            verification.consume_token("ana@example.com", token)

    def test_expired_token_is_rejected(self, verification):
        code = verification.issue_code("ana@example.com").code
        token = verification.confirm_code("ana@example.com", code).token
        later = datetime.now(timezone.utc) + timedelta(minutes=31)

        with pytest.raises(VerificationFailed):
            verification.consume_token("ana@example.com", token, now=later)

    def test_missing_or_unknown_token(self, verification):
        with pytest.raises(VerificationFailed):
            verification.consume_token("ana@example.com", None)
        with pytest.raises(VerificationFailed):
            verification.consume_token("ana@example.com", "not-a-token")

    def test_token_is_bound_to_email(self, verification):
        code = verification.issue_code("ana@example.com").code
        token = verification.confirm_code("ana@example.com", code).token

        with pytest.raises(VerificationFailed):
            verification.consume_token("bo@example.com", token)
