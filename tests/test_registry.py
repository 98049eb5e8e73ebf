"""Tests for agent_fleet.registry."""

from __future__ import annotations

import json

import pytest

from agent_fleet.errors import AlreadyRegistered, NotFoundError, NotInitialized, ProjectNotFound
from agent_fleet.models import project_slug


class TestRegister:
    def test_register_snapshots_metadata(self, registry, make_project):
        path = make_project('Shop-Front')
        (path / 'project-config.json').write_text(
            json.dumps({'name': 'Shop', 'description': 'store', 'version': '2.1.0', 'aurora': {'adapter': 'vue'}})
        )
        adapter_dir = path / 'aurora' / 'adapters' / 'vue'
        adapter_dir.mkdir(parents=True)
        (adapter_dir / 'config.json').write_text(
            json.dumps({'adapter_name': 'vue-3', 'supported_features': ['themes', 'tests']})
        )

        project = registry.register(path)

        assert project.id == 'shop-front'
        assert project.name == 'Shop'
        assert project.adapter == 'vue-3'
        assert project.path == str(path.resolve())
        assert project.enabled is True
        assert project.metadata.version == '2.1.0'
        assert project.metadata.features == ['themes', 'tests']
        assert registry.get('shop-front') == project

    def test_defaults_without_project_config(self, registry, make_project):
        project = registry.register(make_project('plain'))
        assert project.adapter == 'web-react'
        assert project.name == 'plain'
        assert project.metadata.features == []

    def test_name_override(self, registry, make_project):
        project = registry.register(make_project('plain'), name='Custom')
        assert project.name == 'Custom'

    def test_missing_directory(self, registry, tmp_path):
        with pytest.raises(NotFoundError):
            registry.register(tmp_path / 'absent')

    def test_runtime_required(self, registry, tmp_path):
        bare = tmp_path / 'bare'
        bare.mkdir()
        with pytest.raises(NotInitialized):
            registry.register(bare)

    def test_duplicate_requires_force(self, registry, make_project):
        path = make_project('alpha')
        registry.register(path)
        with pytest.raises(AlreadyRegistered):
            registry.register(path)

    def test_force_reregister_keeps_enablement_and_overrides(self, registry, make_project):
        path = make_project('alpha')
        registry.register(path)
        registry.set_enabled('alpha', False)
        registry.set_git_flow_policy({'development_branch': 'dev'}, 'alpha')

        project = registry.register(path, name='Alpha 2', force=True)

        assert project.name == 'Alpha 2'
        assert project.enabled is False
        assert project.git_flow.development_branch == 'dev'
        assert len(registry.list()) == 1


class TestLookup:
    def test_lookup_by_id_name_and_path(self, registry, make_project):
        path = make_project('alpha')
        registry.register(path, name='Alpha')

        assert registry.get('alpha').name == 'Alpha'
        assert registry.get('Alpha').id == 'alpha'
        assert registry.get(str(path)).id == 'alpha'
        assert registry.get('nope') is None

    def test_require_raises(self, registry):
        with pytest.raises(ProjectNotFound):
            registry.require('nope')

    def test_list_filters(self, registry, make_project):
        registry.register(make_project('alpha'))
        registry.register(make_project('beta', adapter='vue'))
        registry.set_enabled('alpha', False)

        assert [p.id for p in registry.list(enabled=True)] == ['beta']
        assert [p.id for p in registry.list(enabled=False)] == ['alpha']
        assert [p.id for p in registry.list(adapter='vue')] == ['beta']

    def test_resolve_falls_back_to_current(self, registry, make_project):
        registry.register(make_project('alpha'))
        with pytest.raises(ProjectNotFound):
            registry.resolve()

        registry.set_current('alpha')
        assert registry.resolve().id == 'alpha'

    def test_slug(self):
        assert project_slug('My App_v2') == 'my-app-v2'


class TestUnregister:
    def test_unregister_clears_current(self, registry, make_project, store):
        path = make_project('alpha')
        registry.register(path)
        registry.set_current('alpha')

        registry.unregister('alpha')

        assert registry.list() == []
        assert store.load_config().current_project is None
        assert path.exists()

    def test_unregister_unknown(self, registry):
        with pytest.raises(ProjectNotFound):
            registry.unregister('ghost')


class TestGitFlowPolicy:
    def test_effective_policy_merges_project_override(self, registry, make_project):
        registry.register(make_project('alpha'))
        registry.set_git_flow_policy({'feature_prefix': 'feat/'}, 'alpha')

        policy = registry.git_flow_policy('alpha')
        assert policy.feature_prefix == 'feat/'
        assert policy.release_prefix == 'release/'
        assert registry.git_flow_policy().feature_prefix == 'feature/'

    def test_workspace_default_update(self, registry, make_project):
        registry.register(make_project('alpha'))
        registry.set_git_flow_policy({'production_branch': 'master'})

        assert registry.git_flow_policy('alpha').production_branch == 'master'


def test_stats(registry, make_project, store):
    registry.register(make_project('alpha'))
    registry.register(make_project('beta', adapter='vue'))
    registry.set_enabled('beta', False)

    stats = registry.stats()
    assert stats.total_projects == 2
    assert stats.enabled_projects == 1
    assert stats.adapters == ['vue', 'web-react']
    assert stats.workspace_dir == store.root
