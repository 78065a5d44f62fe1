import pytest
from ruamel.yaml import YAML

from tfgate.core.errors import ResourceExistsError, ResourceNotFoundError, StoreError, ValidationError
from tfgate.core.models import Configuration, Secret
from tfgate.core.store import ManifestStore

WORKSPACE = """\
# Production VPC
apiVersion: terraform.core.oam.dev/v1beta2
kind: Configuration
metadata:
  name: vpc
  namespace: prod
spec:
  hcl: |
    resource "alicloud_vpc" "main" {}
  providerRef:
    name: ali
    namespace: prod
  x-team: networking   # unknown field survives write-back
---
apiVersion: terraform.core.oam.dev/v1beta1
kind: Provider
metadata:
  name: ali
  namespace: prod
spec:
  provider: alibaba
  region: cn-shanghai
status:
  state: ready
"""

SECRETS = """\
apiVersion: v1
kind: Secret
metadata:
  name: kubeconfig
  namespace: infra
type: Opaque
data:
  config: YXBpVmVyc2lvbjogdjE=
"""


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "prod.yaml").write_text(WORKSPACE)
    (tmp_path / "secrets.yml").write_text(SECRETS)
    (tmp_path / "notes.txt").write_text("not a manifest")
    return tmp_path


def test_loads_known_kinds(workspace):
    store = ManifestStore(str(workspace))

    cfg = store.get_configuration("prod", "vpc")
    assert cfg.hcl.startswith('resource "alicloud_vpc"')
    assert cfg.provider_ref.name == "ali"

    provider = store.get_provider("prod", "ali")
    assert provider.region == "cn-shanghai"
    assert provider.is_ready

    assert store.get_secret("infra", "kubeconfig").data == {"config": "YXBpVmVyc2lvbjogdjE="}
    assert [c.name for c in store.list_configurations()] == ["vpc"]


def test_not_found(workspace):
    with pytest.raises(ResourceNotFoundError):
        ManifestStore(str(workspace)).get_provider("prod", "missing")


def test_update_writes_back_and_keeps_comments(workspace):
    store = ManifestStore(str(workspace))
    cfg = store.get_configuration("prod", "vpc")
    cfg.region = "cn-shanghai"
    store.update_configuration(cfg)

    text = (workspace / "prod.yaml").read_text()
    assert "customRegion: cn-shanghai" in text
    assert "# Production VPC" in text
    assert "x-team: networking" in text

    reloaded = ManifestStore(str(workspace))
    assert reloaded.get_configuration("prod", "vpc").region == "cn-shanghai"
    assert reloaded.get_provider("prod", "ali").region == "cn-shanghai"
    assert not list(workspace.glob("*.tfgate.tmp"))


def test_create_secret_persists_under_generated(workspace):
    store = ManifestStore(str(workspace))
    store.create_secret(Secret(name="copy", namespace="prod", data={"config": "YQ=="}))

    generated = workspace / "_generated" / "secret-prod-copy.yaml"
    doc = YAML(typ="safe").load(generated.read_text())
    assert doc["kind"] == "Secret"
    assert doc["metadata"] == {"name": "copy", "namespace": "prod"}

    with pytest.raises(ResourceExistsError):
        store.create_secret(Secret(name="copy", namespace="prod"))
    assert ManifestStore(str(workspace)).get_secret("prod", "copy").data == {"config": "YQ=="}


def test_invalid_manifests_are_skipped(tmp_path):
    (tmp_path / "broken.yaml").write_text("kind: Configuration\nmetadata: {name: x}\n")
    (tmp_path / "garbage.yaml").write_text("key: [unclosed\n")
    store = ManifestStore(str(tmp_path))

    assert store.list_configurations() == []
    assert len(store.skipped) == 2


GOOD = """\
apiVersion: terraform.core.oam.dev/v1beta2
kind: Configuration
metadata:
  name: good
spec:
  hcl: x
"""


@pytest.mark.parametrize("fragment", [
    "spec:\n  hcl: x\n  backend:\n    backendType: kubernetes\n    kubernetes:\n      configSecret: kc\n",
    "spec:\n  hcl: x\n  backend:\n    backendType: s3\n    s3: bucket\n",
    "spec:\n  hcl: x\n  backend:\n    s3:\n      sharedCredentialsSecret: [aws]\n",
    "spec:\n  hcl: x\nstatus:\n  apply: Available\n",
])
def test_nested_shape_errors_are_skipped(tmp_path, fragment):
    bad = "apiVersion: terraform.core.oam.dev/v1beta2\nkind: Configuration\nmetadata:\n  name: bad\n" + fragment
    (tmp_path / "workspace.yaml").write_text(GOOD + "---\n" + bad)
    store = ManifestStore(str(tmp_path))

    assert [c.name for c in store.list_configurations()] == ["good"]
    assert len(store.skipped) == 1
    assert "must be of type object" in store.skipped[0]["reason"]


def test_unbuildable_configuration_is_left_out_of_listing(tmp_path):
    bad = ("apiVersion: terraform.core.oam.dev/v1beta2\nkind: Configuration\n"
           "metadata:\n  name: bad\n  generation: abc\nspec:\n  hcl: x\n")
    (tmp_path / "workspace.yaml").write_text(GOOD + "---\n" + bad)
    store = ManifestStore(str(tmp_path))

    assert [c.name for c in store.list_configurations()] == ["good"]
    assert "malformed" in store.skipped[-1]["reason"]
    with pytest.raises(ValidationError):
        store.get_configuration("default", "bad")


def test_shape_errors_become_validation_errors():
    doc = {"metadata": {"name": "c"}, "spec": {"backend": {"kubernetes": {"configSecret": "kc"}}}}
    with pytest.raises(ValidationError):
        Configuration.from_manifest(doc)


def test_workspace_must_exist(tmp_path):
    with pytest.raises(StoreError):
        ManifestStore(str(tmp_path / "nope"))
