"""
Unit tests for UserAuthService.
"""

from datetime import datetime, timedelta, timezone

import pytest

from busops.core.errors import AuthError, PasswordChangeError, ProfileUpdateError
from busops.models.auth import Account, Role
from busops.services.accounts import InMemoryAccountRepository
from busops.services.user_auth import UserAuthService, check_password_strength

PASSWORD = "Secret1!"


@pytest.fixture
def repository():
    return InMemoryAccountRepository([
        Account.create(1, "admin@busops.example.com", "Administrator", PASSWORD, role="admin", rounds=4),
        Account.create(2, "manager@busops.example.com", "Manager", "Manag3r!", role="manager", rounds=4),
    ])


@pytest.fixture
def service(repository, settings):
    return UserAuthService(repository, settings)


class TestPasswordPolicy:
    """Test cases for check_password_strength."""

    def test_strong_password(self):
        assert check_password_strength("N3wPassw@rd") is None

    def test_too_short(self):
        assert "at least 8 characters" in check_password_strength("short")

    def test_missing_classes_are_listed(self):
        message = check_password_strength("alllowercase")
        assert "an uppercase letter" in message
        assert "a number" in message
        assert "a special character" in message
        assert "a lowercase letter" not in message

    def test_symbol_outside_allowed_set(self):
        assert "a special character" in check_password_strength("Abcdefg1#")

    def test_longer_than_bcrypt_limit(self):
        assert "at most 72 bytes" in check_password_strength("Aa1!" + "x" * 80)

    def test_limit_counts_utf8_bytes(self):
        """Four ASCII plus 34 two-byte characters fill the limit exactly."""
        assert check_password_strength("Aa1!" + "\u00e9" * 34) is None
        assert "at most 72 bytes" in check_password_strength("Aa1!" + "\u00e9" * 35)


class TestLogin:
    """Test cases for login and token verification."""

    @pytest.mark.asyncio
    async def test_login_then_verify(self, service):
        """A token from login verifies back to the account's claims."""
        result = await service.login("admin@busops.example.com", PASSWORD)

        assert result["user"]["id"] == 1
        assert result["user"]["role"] == Role.ADMIN.value
        assert "password_hash" not in result["user"]

        claims = service.verify_token(result["token"])
        assert claims["id"] == 1
        assert claims["email"] == "admin@busops.example.com"
        assert claims["role"] == "admin"
        assert claims["exp"] - claims["iat"] == 24 * 3600

    @pytest.mark.asyncio
    async def test_wrong_password(self, service):
        with pytest.raises(AuthError, match="Invalid credentials"):
            await service.login("admin@busops.example.com", "Wrong1!pw")

    @pytest.mark.asyncio
    async def test_unknown_email_same_error(self, service):
        with pytest.raises(AuthError, match="Invalid credentials"):
            await service.login("nobody@busops.example.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_email_match_is_case_sensitive(self, service):
        with pytest.raises(AuthError):
            await service.login("Admin@busops.example.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_unparseable_stored_hash_rejects(self, repository, service):
        """A corrupt stored hash fails login instead of erroring."""
        account = await repository.get_by_id(2)
        account.password_hash = "not-a-bcrypt-hash"

        with pytest.raises(AuthError, match="Invalid credentials"):
            await service.login("manager@busops.example.com", "Manag3r!")

    @pytest.mark.asyncio
    async def test_token_expires_after_24_hours(self, repository, service):
        """Issued 25h ago is rejected; issued 1h ago is accepted."""
        account = await repository.get_by_id(1)
        now = datetime.now(timezone.utc)

        stale = service.create_access_token(account, issued_at=now - timedelta(hours=25))
        fresh = service.create_access_token(account, issued_at=now - timedelta(hours=1))

        with pytest.raises(AuthError, match="Invalid token"):
            service.verify_token(stale)
        assert service.verify_token(fresh)["id"] == 1

    def test_tampered_token(self, service):
        """Swapping in another token's payload breaks the signature."""
        admin = Account(id=1, email="admin@busops.example.com", name="A", password_hash="x", role="admin")
        manager = Account(id=2, email="manager@busops.example.com", name="M", password_hash="x",
                          role="manager")
        header, _, signature = service.create_access_token(manager).split(".")
        _, payload, _ = service.create_access_token(admin).split(".")

        with pytest.raises(AuthError):
            service.verify_token(f"{header}.{payload}.{signature}")

    def test_token_signed_with_other_secret(self, service, settings_factory):
        other = UserAuthService(
            InMemoryAccountRepository(),
            settings_factory(jwt_secret_key="another-secret-key-that-is-long-enough-00"),
        )
        account = Account(id=1, email="admin@busops.example.com", name="A", password_hash="x", role="admin")

        with pytest.raises(AuthError):
            service.verify_token(other.create_access_token(account))


class TestChangePassword:
    """Test cases for change_password."""

    @pytest.mark.asyncio
    async def test_round_trip(self, service):
        """After a change only the new password logs in."""
        result = await service.change_password(1, PASSWORD, "N3wPassw@rd")
        assert result["success"] is True
        assert result["timestamp"]

        await service.login("admin@busops.example.com", "N3wPassw@rd")
        with pytest.raises(AuthError):
            await service.login("admin@busops.example.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, service):
        with pytest.raises(PasswordChangeError, match="Current password is incorrect"):
            await service.change_password(1, "Wrong1!pw", "N3wPassw@rd")

    @pytest.mark.asyncio
    async def test_weak_new_password(self, service):
        """A policy violation leaves the stored password untouched."""
        with pytest.raises(PasswordChangeError, match="at least 8 characters"):
            await service.change_password(1, PASSWORD, "short")

        await service.login("admin@busops.example.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_overlong_new_password(self, service):
        """A password bcrypt cannot hash is a bad request, and the old one still works."""
        with pytest.raises(PasswordChangeError, match="at most 72 bytes"):
            await service.change_password(1, PASSWORD, "Aa1!" + "x" * 80)

        await service.login("admin@busops.example.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_same_as_current(self, service):
        with pytest.raises(PasswordChangeError, match="different"):
            await service.change_password(1, PASSWORD, PASSWORD)

    @pytest.mark.asyncio
    async def test_unknown_account(self, service):
        with pytest.raises(PasswordChangeError, match="User not found"):
            await service.change_password(99, PASSWORD, "N3wPassw@rd")

    def test_change_errors_render_as_bad_request(self):
        assert PasswordChangeError("x").status_code == 400


class TestUpdateProfile:
    """Test cases for update_profile."""

    @pytest.mark.asyncio
    async def test_updates_only_supplied_fields(self, service):
        summary = await service.update_profile(2, name="Depot Manager")

        assert summary["name"] == "Depot Manager"
        assert summary["email"] == "manager@busops.example.com"

    @pytest.mark.asyncio
    async def test_email_change_moves_login(self, service):
        await service.update_profile(2, email="depot@busops.example.com", phone="+91 98765 43210")

        result = await service.login("depot@busops.example.com", "Manag3r!")
        assert result["user"]["phone"] == "+91 98765 43210"

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, service):
        with pytest.raises(ProfileUpdateError, match="already in use"):
            await service.update_profile(2, email="admin@busops.example.com")

    @pytest.mark.asyncio
    async def test_unknown_account(self, service):
        with pytest.raises(ProfileUpdateError, match="User not found"):
            await service.update_profile(99, name="Ghost")


class TestAccountPasswordHashing:
    """Test cases for Account.set_password."""

    def test_overlong_password_is_rejected(self):
        account = Account.create(3, "ops@busops.example.com", "Ops", PASSWORD, rounds=4)
        old_hash = account.password_hash

        with pytest.raises(PasswordChangeError, match="at most 72 bytes"):
            account.set_password("Aa1!" + "x" * 80, rounds=4)

        assert account.password_hash == old_hash

    def test_overlong_password_never_verifies(self):
        account = Account.create(3, "ops@busops.example.com", "Ops", PASSWORD, rounds=4)

        assert account.verify_password("Aa1!" + "x" * 80) is False
