"""
Tests for plan loading — templates, variables, validation and the
built-in workstation plan.
"""

import pytest

from devbox.core.config.plan_loader import (
    build_graph,
    builtin_variables,
    load_plan,
    read_plan_file,
    render_template,
)
from devbox.core.data.default_plan import DEFAULT_PLAN
from devbox.core.errors import PlanError

BOOKWORM = builtin_variables(distro_id="debian", codename="bookworm", release="12")


def _plan(*steps, variables=None) -> dict:
    data = {"steps": list(steps)}
    if variables is not None:
        data["variables"] = variables
    return data


class TestRenderTemplate:
    def test_substitutes(self):
        assert render_template("php{php_version}-fpm", {"php_version": "8.3"}) == "php8.3-fpm"

    def test_unknown_left_alone(self):
        assert render_template("{a} {b}", {"a": 1}) == "1 {b}"

    def test_other_braces_untouched(self):
        assert render_template("${Status} {x}", {"x": "y"}) == "${Status} y"


class TestBuiltinVariables:
    def test_codename_falls_back_to_distro(self):
        values = builtin_variables(distro_id="opensuse-tumbleweed")
        assert values["codename"] == "opensuse-tumbleweed"
        assert values["distro"] == "opensuse-tumbleweed"

    def test_instructions_dir_trailing_slash(self):
        assert builtin_variables(instructions_dir="/root/")["instructions_dir"] == "/root"
        assert builtin_variables(instructions_dir="/")["instructions_dir"] == "/"


class TestBuildGraph:
    def test_variables_precedence(self):
        data = _plan(
            {"name": "php", "actions": [{"kind": "install", "packages": ["php{php_version}-cli", "{codename}-x"]}]},
            variables={"php_version": "8.3"},
        )
        graph = build_graph(data, builtins=BOOKWORM)
        assert graph.get("php").actions[0].packages == ["php8.3-cli", "bookworm-x"]

        graph = build_graph(data, builtins=BOOKWORM, variables={"php_version": "8.2"})
        assert graph.get("php").actions[0].packages == ["php8.2-cli", "bookworm-x"]

    def test_plan_variables_may_use_builtins(self):
        data = _plan(
            {"name": "s", "actions": [{"kind": "pin_foreign", "release_tag": "{target}"}]},
            variables={"target": "{codename}"},
        )
        assert build_graph(data, builtins=BOOKWORM).get("s").actions[0].release_tag == "bookworm"

    def test_order_kept(self):
        data = _plan(*({"name": n} for n in ("c", "a", "b")))
        assert build_graph(data).names() == ["c", "a", "b"]

    def test_duplicate_names(self):
        with pytest.raises(PlanError, match="Duplicate step name"):
            build_graph(_plan({"name": "a"}, {"name": "a"}))

    def test_invalid_action(self):
        with pytest.raises(PlanError, match="Invalid step 'bad'"):
            build_graph(_plan({"name": "bad", "actions": [{"kind": "install"}]}))

    def test_unknown_kind(self):
        with pytest.raises(PlanError):
            build_graph(_plan({"name": "bad", "actions": [{"kind": "reboot"}]}))

    def test_empty_steps(self):
        with pytest.raises(PlanError, match="non-empty"):
            build_graph({"steps": []})

    def test_step_not_mapping(self):
        with pytest.raises(PlanError, match="not a mapping"):
            build_graph({"steps": ["oops"]})

    def test_variables_not_mapping(self):
        with pytest.raises(PlanError):
            build_graph({"steps": [{"name": "a"}], "variables": ["x"]})


class TestReadPlanFile:
    def test_yaml(self, tmp_path):
        path = tmp_path / "plan.yml"
        path.write_text("steps:\n  - name: update\n    actions:\n      - kind: refresh\n")
        graph = load_plan(path)
        assert graph.names() == ["update"]
        assert graph.get("update").actions[0].kind == "refresh"

    def test_missing(self, tmp_path):
        with pytest.raises(PlanError, match="not found"):
            read_plan_file(tmp_path / "nope.yml")

    def test_not_mapping(self, tmp_path):
        path = tmp_path / "plan.yml"
        path.write_text("- a\n")
        with pytest.raises(PlanError):
            read_plan_file(path)


class TestDefaultPlan:
    def test_loads(self):
        graph = load_plan(builtins=BOOKWORM)
        assert graph.names() == [
            "fix-dependencies",
            "system-update",
            "enable-i386",
            "build-essential",
            "developer-tools",
            "containers",
            "nodejs",
            "php",
            "non-free",
            "remote-tools",
        ]

    def test_no_step_is_fatal(self):
        graph = load_plan(builtins=BOOKWORM)
        assert not any(s.fatal for s in graph)

    def test_renders_placeholders(self):
        graph = load_plan(builtins=BOOKWORM)
        for step in graph:
            for action in step.actions:
                dumped = action.model_dump_json()
                assert "{codename}" not in dumped
                assert "{php_version}" not in dumped
                assert "{node_major}" not in dumped

    def test_repositories_have_keys(self):
        graph = load_plan(builtins=BOOKWORM)
        repos = [a.source for s in graph for a in s.actions if a.kind == "repo_add"]
        assert {r.id for r in repos} == {"docker", "nodesource", "php-sury"}
        assert all(r.signing_key is not None for r in repos)

    def test_select(self):
        graph = load_plan(builtins=BOOKWORM).select(["php", "fix-dependencies"])
        assert graph.names() == ["fix-dependencies", "php"]

    def test_select_unknown(self):
        with pytest.raises(PlanError, match="Unknown step"):
            load_plan(builtins=BOOKWORM).select(["nope"])

    def test_default_plan_not_mutated(self):
        before = repr(DEFAULT_PLAN)
        load_plan(builtins=BOOKWORM, variables={"php_version": "8.1"})
        assert repr(DEFAULT_PLAN) == before
