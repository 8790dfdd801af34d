"""Pytest configuration and fixtures"""

import pytest

from repogate.core.authorization import BranchProtectionEvaluator, PermissionResolver
from repogate.core.models import AccessMode, Repository, UnitRegistry, User
from repogate.core.services import (BranchProtectionService, CollaborationService,
                                    ProtectedBranchService)
from repogate.core.storage import InMemoryAuthorizationStore

OWNER_ID = 1
ADMIN_ID = 2
ALICE_ID = 3
BOB_ID = 4
CAROL_ID = 5
ORG_ID = 10

PRIVATE_REPO_ID = 100
PUBLIC_REPO_ID = 101
ORG_REPO_ID = 102


@pytest.fixture
def store() -> InMemoryAuthorizationStore:
    """Fresh in-memory store per test"""
    return InMemoryAuthorizationStore()


@pytest.fixture
def unit_registry() -> UnitRegistry:
    """Registry with nothing disabled, independent of the environment"""
    return UnitRegistry()


@pytest.fixture
def owner(store) -> User:
    return store.add_user(User(id=OWNER_ID, name="owner"))


@pytest.fixture
def site_admin(store) -> User:
    return store.add_user(User(id=ADMIN_ID, name="admin", is_admin=True))


@pytest.fixture
def alice(store) -> User:
    return store.add_user(User(id=ALICE_ID, name="alice"))


@pytest.fixture
def bob(store) -> User:
    return store.add_user(User(id=BOB_ID, name="bob"))


@pytest.fixture
def carol(store) -> User:
    return store.add_user(User(id=CAROL_ID, name="Carol"))


@pytest.fixture
def org(store) -> User:
    return store.add_user(User(id=ORG_ID, name="acme", is_organization=True))


@pytest.fixture
def make_repo(store):
    """Factory creating a repository and registering its enabled units"""
    def _make(repo_id, owner, name, is_private=False, units=None) -> Repository:
        store.set_units(repo_id, units if units is not None else UnitRegistry.DEFAULT_UNITS)
        return Repository(id=repo_id, owner=owner, name=name, is_private=is_private)
    return _make


@pytest.fixture
def private_repo(make_repo, owner) -> Repository:
    return make_repo(PRIVATE_REPO_ID, owner, "private", True)


@pytest.fixture
def public_repo(make_repo, owner) -> Repository:
    return make_repo(PUBLIC_REPO_ID, owner, "public", False)


@pytest.fixture
def org_repo(make_repo, org) -> Repository:
    return make_repo(ORG_REPO_ID, org, "service", True)


@pytest.fixture
def resolver(store, unit_registry) -> PermissionResolver:
    return PermissionResolver(store, unit_registry)


@pytest.fixture
def evaluator() -> BranchProtectionEvaluator:
    return BranchProtectionEvaluator()


@pytest.fixture
def collaboration_service(store) -> CollaborationService:
    return CollaborationService(store, default_mode=AccessMode.WRITE)


@pytest.fixture
def protected_branch_service(store, collaboration_service) -> ProtectedBranchService:
    return ProtectedBranchService(store, collaboration_service)


@pytest.fixture
def branch_protection_service(store, resolver) -> BranchProtectionService:
    return BranchProtectionService(store, resolver=resolver)
