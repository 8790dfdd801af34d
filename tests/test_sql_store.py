"""Tests for the SQLAlchemy authorization store"""

from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from repogate.core.authorization import PermissionResolver
from repogate.core.exceptions import StorageError
from repogate.core.models import (AccessMode, Collaboration, CommitStatus,
                                  CommitStatusState, ProtectedBranchMutation,
                                  ProtectedBranchRule, Repository, Team,
                                  UnitRegistry, UnitType, User,
                                  WhitelistOptions)
from repogate.core.services import CollaborationService, ProtectedBranchService
from repogate.infrastructure.database import (DatabaseConnection,
                                              SqlAlchemyAuthorizationStore)

OWNER = User(id=1, name="owner")
ALICE = User(id=3, name="alice")
BOB = User(id=4, name="Bob")
ORG = User(id=10, name="acme", is_organization=True)


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    """Store backed by a temporary SQLite database"""
    connection = DatabaseConnection(f"sqlite:///{tmp_path / 'repogate.db'}")
    await connection.connect()
    await connection.create_schema()

    store = SqlAlchemyAuthorizationStore(connection)
    for user in (OWNER, ALICE, BOB, ORG):
        await store.save_user(user)

    yield store

    await connection.disconnect()


async def save_repo(store, repo_id, owner, is_private=True, units=UnitRegistry.DEFAULT_UNITS):
    repository = Repository(id=repo_id, owner=owner, name=f"repo{repo_id}", is_private=is_private)
    repository.set_units(list(units))
    await store.save_repository(repository)
    return Repository(id=repo_id, owner=owner, name=f"repo{repo_id}", is_private=is_private)


class TestDatabaseConnection:
    """Connection lifecycle"""

    def test_url_conversion(self):
        assert DatabaseConnection("sqlite:///./x.db").database_url == "sqlite+aiosqlite:///./x.db"
        assert DatabaseConnection("postgresql://u@h/db").database_url == "postgresql+asyncpg://u@h/db"

    @pytest.mark.asyncio
    async def test_session_requires_connect(self):
        connection = DatabaseConnection("sqlite:///./unused.db")

        with pytest.raises(RuntimeError):
            async with connection.get_session():
                pass


class TestUsers:
    """User records"""

    @pytest.mark.asyncio
    async def test_load_and_find(self, sql_store):
        assert await sql_store.load_user(ALICE.id) == ALICE
        assert await sql_store.find_user_by_name("bob") == BOB
        assert await sql_store.load_user(999) is None
        assert await sql_store.find_user_by_name("nobody") is None

    @pytest.mark.asyncio
    async def test_load_users_keeps_order(self, sql_store):
        users = await sql_store.load_users([BOB.id, 999, ALICE.id, BOB.id])
        assert [u.id for u in users] == [BOB.id, ALICE.id]

    @pytest.mark.asyncio
    async def test_duplicate_name_is_storage_error(self, sql_store):
        with pytest.raises(StorageError) as exc_info:
            await sql_store.save_user(User(id=20, name="ALICE"))

        assert exc_info.value.code == "RGATE-500"


class TestRepositoriesAndUnits:
    """Repositories and enabled units"""

    @pytest.mark.asyncio
    async def test_units_round_trip(self, sql_store):
        await save_repo(sql_store, 100, OWNER, units=[UnitType.CODE, UnitType.WIKI])

        assert await sql_store.load_enabled_units(100) == [UnitType.CODE, UnitType.WIKI]
        assert await sql_store.load_enabled_units(999) == []

    @pytest.mark.asyncio
    async def test_set_units_replaces(self, sql_store):
        await save_repo(sql_store, 100, OWNER)
        await sql_store.set_units(100, [UnitType.ISSUES])

        assert await sql_store.load_enabled_units(100) == [UnitType.ISSUES]

    @pytest.mark.asyncio
    async def test_load_repository(self, sql_store):
        await save_repo(sql_store, 100, ORG, is_private=False)

        repository = await sql_store.load_repository(100)

        assert repository.owner == ORG
        assert repository.is_public
        assert repository.full_name == "acme/repo100"
        assert await sql_store.load_repository(999) is None


class TestCollaborations:
    """Collaboration records"""

    @pytest.mark.asyncio
    async def test_save_update_delete(self, sql_store):
        await save_repo(sql_store, 100, OWNER)

        saved = await sql_store.save_collaboration(
            Collaboration(repo_id=100, user_id=ALICE.id, mode=AccessMode.WRITE)
        )
        await sql_store.save_collaboration(saved.model_copy(update={"mode": AccessMode.READ}))

        loaded = await sql_store.load_collaboration(100, ALICE.id)
        assert loaded.mode == AccessMode.READ
        assert loaded.created_at == saved.created_at
        assert len(await sql_store.load_collaborations(100)) == 1

        assert await sql_store.delete_collaboration(100, ALICE.id)
        assert not await sql_store.delete_collaboration(100, ALICE.id)
        assert await sql_store.load_collaboration(100, ALICE.id) is None


class TestTeams:
    """Teams, membership and repository access"""

    @pytest.mark.asyncio
    async def test_team_queries(self, sql_store):
        await save_repo(sql_store, 100, ORG)
        await sql_store.save_team(
            Team(id=1, org_id=ORG.id, name="Owners", access_mode=AccessMode.OWNER,
                 includes_all_repositories=True, member_ids=frozenset({OWNER.id}))
        )
        await sql_store.save_team(
            Team(id=2, org_id=ORG.id, name="devs", access_mode=AccessMode.WRITE,
                 units={UnitType.CODE: AccessMode.WRITE}, member_ids=frozenset({ALICE.id, BOB.id}))
        )
        await sql_store.save_team(
            Team(id=3, org_id=ORG.id, name="idle", access_mode=AccessMode.NONE,
                 includes_all_repositories=True, member_ids=frozenset({ALICE.id}))
        )
        await sql_store.add_team_repository(2, 100)
        await sql_store.add_team_repository(2, 100)

        all_teams = await sql_store.load_teams_with_access(ORG.id, 100, AccessMode.READ)
        alice_teams = await sql_store.load_teams_with_access(
            ORG.id, 100, AccessMode.READ, user_id=ALICE.id
        )

        assert [t.id for t in all_teams] == [1, 2]
        assert [t.id for t in alice_teams] == [2]
        assert alice_teams[0].units == {UnitType.CODE: AccessMode.WRITE}
        assert alice_teams[0].member_ids == frozenset({ALICE.id, BOB.id})
        assert await sql_store.load_user_team_ids(ORG.id, ALICE.id) == {2, 3}
        assert await sql_store.is_organization_owner(ORG.id, OWNER.id)
        assert not await sql_store.is_organization_owner(ORG.id, ALICE.id)

    @pytest.mark.asyncio
    async def test_save_team_replaces_members(self, sql_store):
        team = await sql_store.save_team(
            Team(id=2, org_id=ORG.id, name="devs", member_ids=frozenset({ALICE.id}))
        )
        updated = await sql_store.save_team(
            team.model_copy(update={"member_ids": frozenset({BOB.id}), "units": None})
        )

        assert updated.member_ids == frozenset({BOB.id})
        assert await sql_store.load_user_team_ids(ORG.id, ALICE.id) == set()
        assert await sql_store.load_user_team_ids(ORG.id, BOB.id) == {2}


class TestProtectedBranches:
    """Protected branch rules"""

    @pytest.mark.asyncio
    async def test_upsert_round_trip(self, sql_store):
        await save_repo(sql_store, 100, OWNER)
        rule = ProtectedBranchRule(
            repo_id=100,
            branch_name="main",
            can_push=True,
            enable_whitelist=True,
            whitelist_user_ids={ALICE.id, BOB.id},
            status_check_contexts=["ci/build", "ci/test"],
            required_approvals=2,
            protected_file_patterns="*.lock;docs/**",
        )

        created = await sql_store.upsert_protected_branch_rule(rule)
        loaded = await sql_store.load_protected_branch_rule(100, "main")

        assert created.id is not None
        assert loaded.id == created.id
        assert loaded.whitelist_user_ids == frozenset({ALICE.id, BOB.id})
        assert loaded.status_check_contexts == ("ci/build", "ci/test")
        assert loaded.protected_file_patterns == ("*.lock", "docs/**")
        assert loaded.required_approvals == 2
        assert await sql_store.load_protected_branch_rule(100, "dev") is None

    @pytest.mark.asyncio
    async def test_upsert_updates_same_row(self, sql_store):
        await save_repo(sql_store, 100, OWNER)
        created = await sql_store.upsert_protected_branch_rule(
            ProtectedBranchRule(repo_id=100, branch_name="main", whitelist_user_ids={ALICE.id})
        )

        updated = await sql_store.upsert_protected_branch_rule(
            created.model_copy(update={"whitelist_user_ids": frozenset({BOB.id}), "can_push": True})
        )

        assert updated.id == created.id
        assert updated.whitelist_user_ids == frozenset({BOB.id})
        assert updated.can_push
        assert len(await sql_store.list_protected_branch_rules(100)) == 1

    @pytest.mark.asyncio
    async def test_list_and_delete(self, sql_store):
        await save_repo(sql_store, 100, OWNER)
        await save_repo(sql_store, 101, OWNER)
        release = await sql_store.upsert_protected_branch_rule(
            ProtectedBranchRule(repo_id=100, branch_name="release")
        )
        await sql_store.upsert_protected_branch_rule(ProtectedBranchRule(repo_id=100, branch_name="main"))

        assert [r.branch_name for r in await sql_store.list_protected_branch_rules(100)] == ["main", "release"]
        assert await sql_store.load_protected_branch_rule_by_id(100, release.id) == release
        assert not await sql_store.delete_protected_branch_rule(101, release.id)
        assert await sql_store.delete_protected_branch_rule(100, release.id)
        assert await sql_store.load_protected_branch_rule_by_id(100, release.id) is None


class TestCommitStatuses:
    """Recent status contexts"""

    @pytest.mark.asyncio
    async def test_recent_contexts(self, sql_store):
        await save_repo(sql_store, 100, OWNER)
        now = datetime.utcnow()
        for context, age in [("ci/test", 1), ("ci/build", 2), ("ci/test", 3), ("ci/old", 40)]:
            await sql_store.add_commit_status(CommitStatus(
                repo_id=100,
                sha="deadbeef",
                context=context,
                state=CommitStatusState.SUCCESS,
                created_at=now - timedelta(days=age),
            ))

        contexts = await sql_store.find_recent_status_contexts(100, now - timedelta(days=7))

        assert contexts == ["ci/build", "ci/test"]


class TestServicesOnSqlStore:
    """Resolver and services running against the database"""

    @pytest.mark.asyncio
    async def test_collaboration_and_resolution(self, sql_store):
        await save_repo(sql_store, 100, OWNER)
        resolver = PermissionResolver(sql_store, UnitRegistry())
        collaborations = CollaborationService(sql_store, default_mode=AccessMode.WRITE)

        await collaborations.add_collaborator(
            Repository(id=100, owner=OWNER, name="repo100", is_private=True), ALICE
        )
        permission = await resolver.resolve(
            Repository(id=100, owner=OWNER, name="repo100", is_private=True), ALICE
        )

        assert permission.can_write(UnitType.CODE)
        assert permission.can_read(UnitType.WIKI)

    @pytest.mark.asyncio
    async def test_team_unit_resolution(self, sql_store):
        repository = await save_repo(sql_store, 100, ORG)
        await sql_store.save_team(
            Team(id=2, org_id=ORG.id, name="triage", access_mode=AccessMode.WRITE,
                 units={UnitType.ISSUES: AccessMode.WRITE}, member_ids=frozenset({ALICE.id}))
        )
        await sql_store.add_team_repository(2, 100)

        permission = await PermissionResolver(sql_store, UnitRegistry()).resolve(repository, ALICE)

        assert permission.can_write(UnitType.ISSUES)
        assert not permission.can_read(UnitType.CODE)

    @pytest.mark.asyncio
    async def test_protected_branch_lifecycle(self, sql_store):
        repository = await save_repo(sql_store, 100, OWNER)
        service = ProtectedBranchService(
            sql_store, CollaborationService(sql_store, default_mode=AccessMode.WRITE)
        )

        rule = await service.update_protect_branch(
            repository,
            "main",
            ProtectedBranchMutation(can_push=True, enable_whitelist=True),
            WhitelistOptions(user_ids=["alice", "ghost", ORG.id]),
        )
        assert rule.whitelist_user_ids == frozenset({ALICE.id})

        await service.delete_protected_branch(repository, rule.id)
        assert await service.get_protected_branch(repository, "main") is None
