"""Tests for resolver.py: graph traversal, cycles, modules and cancellation."""

import logging
import threading

import pytest

from gavcollect.context import ProgressSink, ResolutionContext
from gavcollect.errors import RepositoryUnavailable
from gavcollect.pom_models import SourceType
from gavcollect.resolver import GraphResolver, collect_project


def _resolve(local_repo, roots, progress=None):
    context = ResolutionContext(locator=local_repo.locator, progress=progress or ProgressSink())
    GraphResolver(local_repo.locator).resolve_all(roots, context)
    return context


def _coords(context):
    return [str(c) for c in context.collector.to_list()]


class CancelAfterFirstReport(ProgressSink):
    def report(self, fraction, status):
        super().report(fraction, status)
        self.cancel()


class TestScenario:
    def test_inherited_unversioned_plugin(self, local_repo, write_module):
        local_repo.add_pom("com.acme", "parent", "1.0", packaging="pom", body="""
            <properties><jar.plugin.version>3.1.1</jar.plugin.version></properties>
            <build><plugins>
                <plugin>
                    <groupId>org.apache.maven.plugins</groupId>
                    <artifactId>maven-jar-plugin</artifactId>
                </plugin>
            </plugins></build>
        """)
        app = write_module("app", """\
            <project>
                <parent>
                    <groupId>com.acme</groupId>
                    <artifactId>parent</artifactId>
                    <version>1.0</version>
                </parent>
                <artifactId>app</artifactId>
            </project>
        """)
        context = _resolve(local_repo, [app])
        assert _coords(context) == [
            "com.acme:app:1.0:jar",
            "com.acme:parent:1.0:pom",
            "org.apache.maven.plugins:maven-jar-plugin:3.1.1:maven-plugin",
        ]
        sources = [c.source_type for c in context.collector]
        assert sources == [SourceType.PROJECT, SourceType.PARENT, SourceType.PLUGIN]

    def test_child_override_yields_single_plugin_version(self, local_repo, write_module):
        local_repo.add_pom("com.acme", "parent", "1.0", packaging="pom", body="""
            <properties><x.version>1.0</x.version></properties>
            <build><plugins>
                <plugin>
                    <groupId>com.acme.plugins</groupId>
                    <artifactId>x-maven-plugin</artifactId>
                    <version>${x.version}</version>
                </plugin>
            </plugins></build>
        """)
        app = write_module("app", """\
            <project>
                <parent><groupId>com.acme</groupId><artifactId>parent</artifactId><version>1.0</version></parent>
                <artifactId>app</artifactId>
                <properties><x.version>2.0</x.version></properties>
            </project>
        """)
        context = _resolve(local_repo, [app])
        plugin_versions = [c.version for c in context.collector if c.artifact_id == "x-maven-plugin"]
        assert plugin_versions == ["2.0"]


class TestCycles:
    def test_parent_cycle_terminates_with_each_once(self, local_repo):
        a = local_repo.add_pom("g", "a", "1", packaging="pom", body="""
            <parent><groupId>g</groupId><artifactId>b</artifactId><version>1</version></parent>
        """)
        local_repo.add_pom("g", "b", "1", packaging="pom", body="""
            <parent><groupId>g</groupId><artifactId>a</artifactId><version>1</version></parent>
        """)
        context = _resolve(local_repo, [a])
        assert sorted(_coords(context)) == ["g:a:1:pom", "g:b:1:pom"]

    def test_jar_root_in_parent_cycle_collected_under_both_packagings(self, local_repo, write_module):
        local_repo.add_pom("g", "b", "1", packaging="pom", body="""
            <parent><groupId>g</groupId><artifactId>a</artifactId><version>1</version></parent>
        """)
        a = write_module("a", """\
            <project>
                <parent><groupId>g</groupId><artifactId>b</artifactId><version>1</version></parent>
                <groupId>g</groupId><artifactId>a</artifactId><version>1</version>
            </project>
        """)
        context = _resolve(local_repo, [a])
        assert _coords(context) == ["g:a:1:jar", "g:b:1:pom", "g:a:1:pom"]
        assert context.visited == {"g:a:1", "g:b:1"}

    def test_dependency_cycle_terminates(self, local_repo, write_module):
        local_repo.add_pom("g", "x", "1", body="""
            <dependencies><dependency><groupId>g</groupId><artifactId>y</artifactId><version>1</version></dependency></dependencies>
        """)
        local_repo.add_pom("g", "y", "1", body="""
            <dependencies><dependency><groupId>g</groupId><artifactId>x</artifactId><version>1</version></dependency></dependencies>
        """)
        app = write_module("app", """\
            <project>
                <groupId>g</groupId><artifactId>app</artifactId><version>1</version>
                <dependencies><dependency><groupId>g</groupId><artifactId>x</artifactId><version>1</version></dependency></dependencies>
            </project>
        """)
        context = _resolve(local_repo, [app])
        assert _coords(context) == ["g:app:1:jar", "g:x:1:jar", "g:y:1:jar"]
        assert {"g:app:1", "g:x:1", "g:y:1"} <= context.visited


class TestMultiModule:
    def test_modules_resolved_as_roots(self, local_repo, write_module, caplog):
        root = write_module("", """\
            <project>
                <groupId>com.acme</groupId>
                <artifactId>root</artifactId>
                <version>1.0</version>
                <packaging>pom</packaging>
                <modules>
                    <module>core</module>
                    <module>web</module>
                    <module>ghost</module>
                </modules>
            </project>
        """)
        for name in ("core", "web"):
            write_module(name, f"""\
                <project>
                    <parent><groupId>com.acme</groupId><artifactId>root</artifactId><version>1.0</version></parent>
                    <artifactId>{name}</artifactId>
                    <dependencies>
                        <dependency><groupId>com.acme</groupId><artifactId>core</artifactId><version>${{project.version}}</version></dependency>
                    </dependencies>
                </project>
            """)
        with caplog.at_level(logging.WARNING):
            context = _resolve(local_repo, [root])
        assert _coords(context) == [
            "com.acme:root:1.0:pom",
            "com.acme:core:1.0:jar",
            "com.acme:web:1.0:jar",
        ]
        assert "ghost" in caplog.text
        assert [d.kind for d in context.diagnostics] == ["missing-module"]

    def test_resolve_root_returns_module_paths(self, local_repo, write_module):
        root = write_module("", """\
            <project>
                <groupId>g</groupId><artifactId>root</artifactId><version>1</version>
                <packaging>pom</packaging>
                <modules><module>core</module></modules>
            </project>
        """)
        core = write_module("core", """\
            <project><groupId>g</groupId><artifactId>core</artifactId><version>1</version></project>
        """)
        context = ResolutionContext(locator=local_repo.locator)
        resolver = GraphResolver(local_repo.locator)
        assert resolver.resolve_root(root, context) == [core]
        assert resolver.resolve_root(root, context) == []


class TestExpansion:
    def test_bom_imports_followed(self, local_repo, write_module):
        local_repo.add_pom("com.acme", "platform-bom", "2.0", packaging="pom", body="""
            <dependencyManagement><dependencies>
                <dependency><groupId>com.google.guava</groupId><artifactId>guava</artifactId><version>33.0-jre</version></dependency>
            </dependencies></dependencyManagement>
        """)
        local_repo.add_pom("com.acme", "umbrella-bom", "5.0", packaging="pom", body="""
            <dependencyManagement><dependencies>
                <dependency>
                    <groupId>com.acme</groupId><artifactId>platform-bom</artifactId>
                    <version>2.0</version><type>pom</type><scope>import</scope>
                </dependency>
            </dependencies></dependencyManagement>
        """)
        app = write_module("app", """\
            <project>
                <groupId>com.acme</groupId><artifactId>app</artifactId><version>1.0</version>
                <dependencyManagement><dependencies>
                    <dependency>
                        <groupId>com.acme</groupId><artifactId>umbrella-bom</artifactId>
                        <version>5.0</version><type>pom</type><scope>import</scope>
                    </dependency>
                </dependencies></dependencyManagement>
            </project>
        """)
        context = _resolve(local_repo, [app])
        assert _coords(context) == [
            "com.acme:app:1.0:jar",
            "com.google.guava:guava:33.0-jre:jar",
            "com.acme:umbrella-bom:5.0:pom",
            "com.acme:platform-bom:2.0:pom",
        ]
        by_name = {c.artifact_id: c.source_type for c in context.collector}
        assert by_name["guava"] is SourceType.DEP_MANAGED
        assert by_name["platform-bom"] is SourceType.BOM

    def test_transitive_dependencies_filtered_by_scope(self, local_repo, write_module):
        local_repo.add_pom("com.acme", "lib", "1.0", body="""
            <dependencies>
                <dependency><groupId>com.acme</groupId><artifactId>compile-dep</artifactId><version>2.0</version></dependency>
                <dependency><groupId>com.acme</groupId><artifactId>runtime-dep</artifactId><version>1.1</version><scope>runtime</scope></dependency>
                <dependency><groupId>junit</groupId><artifactId>junit</artifactId><version>4.13.2</version><scope>test</scope></dependency>
                <dependency><groupId>com.acme</groupId><artifactId>provided-dep</artifactId><version>1</version><scope>provided</scope></dependency>
                <dependency><groupId>com.acme</groupId><artifactId>optional-dep</artifactId><version>1</version><optional>true</optional></dependency>
            </dependencies>
        """)
        app = write_module("app", """\
            <project>
                <groupId>com.acme</groupId><artifactId>app</artifactId><version>1.0</version>
                <dependencies>
                    <dependency><groupId>com.acme</groupId><artifactId>lib</artifactId><version>1.0</version></dependency>
                </dependencies>
            </project>
        """)
        context = _resolve(local_repo, [app])
        assert _coords(context) == [
            "com.acme:app:1.0:jar",
            "com.acme:lib:1.0:jar",
            "com.acme:compile-dep:2.0:jar",
            "com.acme:runtime-dep:1.1:jar",
        ]

    def test_plugin_dependencies_followed(self, local_repo, write_module):
        local_repo.add_pom("org.jacoco", "jacoco-maven-plugin", "0.8.12", packaging="maven-plugin", body="""
            <dependencies>
                <dependency><groupId>org.jacoco</groupId><artifactId>org.jacoco.agent</artifactId><version>0.8.12</version></dependency>
            </dependencies>
        """)
        app = write_module("app", """\
            <project>
                <groupId>com.acme</groupId><artifactId>app</artifactId><version>1.0</version>
                <build><plugins>
                    <plugin><groupId>org.jacoco</groupId><artifactId>jacoco-maven-plugin</artifactId><version>0.8.12</version></plugin>
                </plugins></build>
            </project>
        """)
        context = _resolve(local_repo, [app])
        assert _coords(context) == [
            "com.acme:app:1.0:jar",
            "org.jacoco:jacoco-maven-plugin:0.8.12:maven-plugin",
            "org.jacoco:org.jacoco.agent:0.8.12:jar",
        ]
        assert context.collector.to_list()[-1].source_type is SourceType.PLUGIN_DEP

    def test_unresolved_placeholder_not_collected(self, local_repo, write_module):
        app = write_module("app", """\
            <project>
                <groupId>com.acme</groupId><artifactId>app</artifactId><version>1.0</version>
                <dependencies>
                    <dependency><groupId>x</groupId><artifactId>ghost</artifactId><version>${undefined.prop}</version></dependency>
                </dependencies>
            </project>
        """)
        context = _resolve(local_repo, [app])
        assert _coords(context) == ["com.acme:app:1.0:jar"]
        assert [d.kind for d in context.diagnostics] == ["unresolved-placeholder"]


class TestFailureIsolation:
    def test_missing_root_recorded(self, local_repo, tmp_path):
        context = _resolve(local_repo, [tmp_path / "nope" / "pom.xml"])
        assert _coords(context) == []
        assert [d.kind for d in context.diagnostics] == ["not-found"]

    def test_malformed_root_salvaged(self, local_repo, tmp_pom):
        local_repo.add_pom("com.acme", "parent", "1.0", packaging="pom")
        pom = tmp_pom("""\
            <project>
                <parent>
                    <groupId>com.acme</groupId>
                    <artifactId>parent</artifactId>
                    <version>1.0</version>
                </parent>
                <artifactId>broken</artifactId>
                <dependencies>
        """)
        good = tmp_pom("""\
            <project><groupId>com.acme</groupId><artifactId>good</artifactId><version>1</version></project>
        """, name="good/pom.xml")
        context = _resolve(local_repo, [pom, good])
        assert _coords(context) == [
            "com.acme:broken:1.0:jar",
            "com.acme:parent:1.0:pom",
            "com.acme:good:1:jar",
        ]
        assert context.diagnostics[0].kind == "parse-error"

    def test_malformed_dependency_descriptor_keeps_parent(self, local_repo, write_module):
        local_repo.add_pom("g", "dparent", "1", packaging="pom")
        local_repo.add_raw_pom("g", "d", "1", """\
            <project>
                <parent><groupId>g</groupId><artifactId>dparent</artifactId><version>1</version></parent>
                <artifactId>d</artifactId>
                <dependencies>
        """)
        app = write_module("app", """\
            <project>
                <groupId>g</groupId><artifactId>app</artifactId><version>1</version>
                <dependencies><dependency><groupId>g</groupId><artifactId>d</artifactId><version>1</version></dependency></dependencies>
            </project>
        """)
        context = _resolve(local_repo, [app])
        assert _coords(context) == ["g:app:1:jar", "g:d:1:jar", "g:dparent:1:pom"]
        assert [(d.kind, d.subject) for d in context.diagnostics] == [("parse-error", "g:d:1")]

    def test_unreadable_dependency_without_parent_recorded(self, local_repo, write_module):
        local_repo.add_raw_pom("g", "d", "1", "<project><dependencies>")
        app = write_module("app", """\
            <project>
                <groupId>g</groupId><artifactId>app</artifactId><version>1</version>
                <dependencies><dependency><groupId>g</groupId><artifactId>d</artifactId><version>1</version></dependency></dependencies>
            </project>
        """)
        context = _resolve(local_repo, [app])
        assert _coords(context) == ["g:app:1:jar", "g:d:1:jar"]
        assert [d.kind for d in context.diagnostics] == ["unreadable-descriptor"]

    def test_unversioned_root_not_marked_visited(self, local_repo, write_module):
        app = write_module("app", """\
            <project><groupId>g</groupId><artifactId>app</artifactId></project>
        """)
        context = _resolve(local_repo, [app])
        assert _coords(context) == []
        assert context.visited == set()
        assert [d.kind for d in context.diagnostics] == ["missing-field"]

    def test_unavailable_repository_raises(self, tmp_path, tmp_pom):
        repo = tmp_path / "repo-file"
        repo.write_text("")
        context = ResolutionContext.for_repository(repo)
        with pytest.raises(RepositoryUnavailable):
            GraphResolver(context.locator).resolve_all([tmp_pom("<project/>")], context)


class TestCancellation:
    def _two_projects(self, write_module):
        return [
            write_module(name, f"""\
                <project><groupId>g</groupId><artifactId>{name}</artifactId><version>1</version></project>
            """)
            for name in ("first", "second")
        ]

    def test_cancelled_before_start(self, local_repo, write_module):
        progress = ProgressSink()
        progress.cancel()
        context = _resolve(local_repo, self._two_projects(write_module), progress)
        assert _coords(context) == []

    def test_cancel_stops_remaining_roots(self, local_repo, write_module):
        context = _resolve(local_repo, self._two_projects(write_module), CancelAfterFirstReport())
        assert _coords(context) == ["g:first:1:jar"]

    def test_cancel_from_another_thread(self):
        progress = ProgressSink()
        worker = threading.Thread(target=progress.cancel)
        worker.start()
        worker.join()
        assert progress.is_cancelled()


class TestProperties:
    def test_idempotent(self, local_repo, write_module):
        local_repo.add_pom("com.acme", "lib", "1.0", body="""
            <dependencies><dependency><groupId>com.acme</groupId><artifactId>dep</artifactId><version>2</version></dependency></dependencies>
        """)
        app = write_module("app", """\
            <project>
                <groupId>com.acme</groupId><artifactId>app</artifactId><version>1.0</version>
                <dependencies><dependency><groupId>com.acme</groupId><artifactId>lib</artifactId><version>1.0</version></dependency></dependencies>
            </project>
        """)
        first = _resolve(local_repo, [app])
        second = _resolve(local_repo, [app])
        assert set(first.collector.to_list()) == set(second.collector.to_list())

    def test_no_duplicate_keys(self, local_repo, write_module):
        app = write_module("app", """\
            <project>
                <groupId>com.acme</groupId><artifactId>app</artifactId><version>1.0</version>
                <dependencyManagement><dependencies>
                    <dependency><groupId>com.acme</groupId><artifactId>lib</artifactId><version>1.0</version></dependency>
                </dependencies></dependencyManagement>
                <dependencies>
                    <dependency><groupId>com.acme</groupId><artifactId>lib</artifactId></dependency>
                </dependencies>
            </project>
        """)
        context = _resolve(local_repo, [app, app])
        keys = [c.key for c in context.collector]
        assert len(keys) == len(set(keys))
        assert [c.source_type for c in context.collector if c.artifact_id == "lib"] == [SourceType.DEPENDENCY]


class TestCollectProject:
    def test_uses_given_repository(self, local_repo, write_module):
        local_repo.add_pom("com.acme", "parent", "1.0", packaging="pom")
        app = write_module("app", """\
            <project>
                <parent><groupId>com.acme</groupId><artifactId>parent</artifactId><version>1.0</version></parent>
                <artifactId>app</artifactId>
            </project>
        """)
        context = collect_project([app], repo_root=local_repo.root)
        assert _coords(context) == ["com.acme:app:1.0:jar", "com.acme:parent:1.0:pom"]
        assert context.repo_root == local_repo.root
