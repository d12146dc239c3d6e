"""
Tests for loading environments from mu.yml.
"""

import pytest

from mu_workflows.config import Environment, VpcTarget, load_config, loads_config, parse_config
from mu_workflows.errors import ConfigError


class TestLoadsConfig:
    def test_managed_and_unmanaged(self):
        config = loads_config("""
environments:
  - name: dev
  - name: prod
    vpcTarget:
      vpcId: vpc-1
      publicSubnetIds: [subnet-1, subnet-2, subnet-3]
""")

        assert config.environments == [
            Environment(name="dev"),
            Environment(name="prod", vpc_target=VpcTarget("vpc-1", ("subnet-1", "subnet-2", "subnet-3"))),
        ]
        assert config.environments[0].is_network_managed
        assert not config.environments[1].is_network_managed

    def test_vpc_target_requires_a_subnet(self):
        with pytest.raises(ConfigError, match="at least one public subnet"):
            loads_config("""
environments:
  - name: dev
    vpcTarget:
      vpcId: vpc-1
""")

    def test_empty_environment_list(self):
        assert loads_config("environments: []").environments == []

    @pytest.mark.parametrize("text", ["", "settings: {}\n"])
    def test_missing_environments_section(self, text):
        with pytest.raises(ConfigError):
            loads_config(text)

    @pytest.mark.parametrize("text", [
        "environments: foo",
        "environments:\n  - vpcTarget: {vpcId: vpc-1}",
        "environments:\n  - name: dev\n    vpcTarget: {publicSubnetIds: [a]}",
        "environments:\n  - name: dev\n    vpcTarget: {vpcId: vpc-1, publicSubnetIds: subnet-1}",
        "- just\n- a list",
    ])
    def test_invalid(self, text):
        with pytest.raises(ConfigError):
            loads_config(text)

    def test_invalid_yaml(self):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            loads_config("environments: [unclosed")


class TestLoadConfig:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "mu.yml"
        path.write_text("environments:\n  - name: dev\n")
        assert load_config(path).environments == [Environment(name="dev")]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yml")


def test_parse_none():
    with pytest.raises(ConfigError, match="mapping"):
        parse_config(None)
