"""
Unit tests for services.sessions (login, logout and token resolution).
"""
import pytest

from app.core.errors import InactiveError, InvalidCredentialsError, SuspendedError, ValidationError
from app.models import Account, AccountState, AuthProvider, Session
from app.services.sessions import LoginResult


pytestmark = pytest.mark.asyncio


class TestLogin:
    async def test_success_updates_last_login_and_opens_session(self, sessions, create_account, clock):
        account, password = await create_account()

        result = await sessions.login(account.email, password)

        assert isinstance(result, LoginResult)
        assert result.account.id == account.id
        assert (await Account.get(id=account.id)).last_login == clock.now()
        assert await Session.filter(account_id=account.id).count() == 1

    async def test_email_is_case_insensitive(self, sessions, create_account):
        account, password = await create_account(email="erin@example.com")
        assert isinstance(await sessions.login("  ERIN@Example.com ", password), LoginResult)

    async def test_wrong_password_and_unknown_email_look_the_same(self, sessions, create_account):
        account, _ = await create_account()

        wrong_password = await sessions.login(account.email, "nope-nope")
        unknown_email = await sessions.login("ghost@example.com", "nope-nope")

        assert isinstance(wrong_password, InvalidCredentialsError)
        assert isinstance(unknown_email, InvalidCredentialsError)
        assert wrong_password.to_dict() == unknown_email.to_dict()
        assert wrong_password.status_code == 401

    async def test_inactive_account_needs_reactivation_and_gets_no_session(self, sessions, create_account):
        account, password = await create_account(active=False)

        result = await sessions.login(account.email, password)

        assert isinstance(result, InactiveError)
        assert result.meta["needs_reactivation"] is True
        assert result.meta["redirect_url"] == "/reactivate"
        assert await Session.filter(account_id=account.id).count() == 0
        assert (await Account.get(id=account.id)).last_login is None

    async def test_inactive_account_with_wrong_password_is_just_invalid(self, sessions, create_account):
        account, _ = await create_account(active=False)
        assert isinstance(await sessions.login(account.email, "wrong-pass"), InvalidCredentialsError)

    async def test_suspended_account(self, sessions, create_account):
        account, password = await create_account(suspended=True, active=False)
        result = await sessions.login(account.email, password)
        assert isinstance(result, SuspendedError)
        assert result.to_dict()["suspended"] is True

    async def test_oauth_account_without_password_cannot_use_password_login(self, sessions, db):
        account = await sessions.provision_oauth_account("oauth@example.com")
        assert account.password_hash is None
        assert isinstance(await sessions.login("oauth@example.com", ""), InvalidCredentialsError)


class TestRegistration:
    async def test_register_creates_password_account_with_user_role(self, sessions, db):
        account = await sessions.register("New.User@Example.com", "GoodPass#1", "GoodPass#1")

        assert isinstance(account, Account)
        await account.fetch_related("role")
        assert account.email == "new.user@example.com"
        assert account.role.name == "user"
        assert account.auth_provider == AuthProvider.PASSWORD
        assert account.state == AccountState.ACTIVE

    async def test_duplicate_email_is_case_insensitive(self, sessions, create_account):
        await create_account(email="taken@example.com")
        result = await sessions.register("TAKEN@example.com", "GoodPass#1", "GoodPass#1")
        assert isinstance(result, ValidationError)
        assert "email" in result.errors

    async def test_password_rules(self, sessions, db):
        short = await sessions.register("a@example.com", "short", "short")
        mismatch = await sessions.register("b@example.com", "GoodPass#1", "GoodPass#2")
        assert isinstance(short, ValidationError)
        assert isinstance(mismatch, ValidationError)
        assert await Account.all().count() == 0

    async def test_provision_oauth_account_is_find_or_create(self, sessions, db):
        first = await sessions.provision_oauth_account("Fiona@example.com")
        second = await sessions.provision_oauth_account("fiona@example.com")

        assert first.id == second.id
        assert first.state == AccountState.PASSWORD_PENDING
        assert first.auth_provider == AuthProvider.OAUTH


class TestResolution:
    async def test_resolve_returns_identity(self, sessions, create_account):
        account, password = await create_account()
        login = await sessions.login(account.email, password)

        identity = await sessions.resolve(login.token)

        assert identity.authenticated
        assert identity.account.id == account.id

    async def test_bad_tokens_resolve_to_nothing(self, sessions, db):
        assert await sessions.resolve(None) is None
        assert await sessions.resolve("") is None
        assert await sessions.resolve("not-a-jwt") is None

    async def test_sliding_session_expires_after_idle_period(self, sessions, create_account, clock):
        account, password = await create_account()
        login = await sessions.login(account.email, password)

        clock.advance(minutes=100)
        assert await sessions.resolve(login.token) is not None  # slides to +120 min from here
        clock.advance(minutes=100)
        assert await sessions.resolve(login.token) is not None
        clock.advance(minutes=121)
        assert await sessions.resolve(login.token) is None
        assert await Session.filter(account_id=account.id).count() == 0

    async def test_remembered_session_has_fixed_lifetime(self, sessions, create_account, clock):
        account, password = await create_account()
        login = await sessions.login(account.email, password, remember=True)

        clock.advance(hours=5)
        assert await sessions.resolve(login.token) is not None
        clock.advance(days=30)
        assert await sessions.resolve(login.token) is None

    async def test_probe_does_not_touch_the_session(self, sessions, create_account, clock):
        account, password = await create_account()
        login = await sessions.login(account.email, password)
        before = await Session.get(id=login.session.id)

        clock.advance(minutes=10)
        identity = await sessions.resolve(login.token, touch=False)

        after = await Session.get(id=login.session.id)
        assert identity is not None
        assert after.last_activity == before.last_activity
        assert after.expires_at == before.expires_at

    async def test_logout_is_idempotent(self, sessions, create_account):
        account, password = await create_account()
        login = await sessions.login(account.email, password)

        await sessions.logout(login.token)
        await sessions.logout(login.token)
        await sessions.logout(None)

        assert await sessions.resolve(login.token) is None

    async def test_deleted_account_resolves_anonymous(self, sessions, create_account):
        account, password = await create_account()
        login = await sessions.login(account.email, password)
        await account.delete()

        identity = await sessions.resolve(login.token)
        assert identity is not None
        assert identity.authenticated is False

    async def test_purge_expired(self, sessions, create_account, clock):
        account, password = await create_account()
        await sessions.login(account.email, password)
        await sessions.login(account.email, password, remember=True)

        clock.advance(hours=3)
        assert await sessions.purge_expired() == 1
        assert await Session.filter(account_id=account.id).count() == 1
