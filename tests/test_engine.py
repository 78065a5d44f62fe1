import pytest

from tfgate.core.engine import ReconcileEngine
from tfgate.core.errors import ProviderLookupError, StoreError
from tfgate.core.models import (
    BackendSpec,
    Configuration,
    ConfigurationState,
    ConfigurationType,
    S3Backend,
    SecretSelector,
)
from tfgate.core.settings import Settings
from tfgate.resolution.pipeline import ResolutionPipeline


def test_pipeline_pins_region_and_renders(store, hcl_configuration, ready_provider):
    context = ResolutionPipeline(store).run(hcl_configuration)

    assert context.configuration_type is ConfigurationType.HCL
    assert context.rendered.startswith(hcl_configuration.hcl)
    assert context.region == "cn-beijing"
    assert context.provider_found
    assert "region pinned to cn-beijing" in context.notes


def test_pipeline_mirrors_remote_when_blocked(store, remote_configuration, ready_provider):
    settings = Settings(github_blocked="true")
    context = ResolutionPipeline(store, settings).run(remote_configuration)

    assert context.remote_url == "https://gitee.com/kubevela-contrib/terraform-modules.git"
    assert context.rendered == context.backend.rendered_block


def test_pipeline_without_provider_leaves_region(store, hcl_configuration):
    context = ResolutionPipeline(store).run(hcl_configuration)
    assert context.region == ""
    assert not context.provider_found
    assert "update_configuration" not in store.calls


def test_pipeline_inline_credentials_skip_provider(store):
    cfg = store.add_configuration(Configuration(name="c", hcl="x", inline_credentials=True))
    context = ResolutionPipeline(store).run(cfg)
    assert "get_provider" not in store.calls
    assert context.region == ""


def test_reconcile_reports_success(store, hcl_configuration, ready_provider):
    engine = ReconcileEngine(store=store)
    report = engine.reconcile("default", "oss-bucket")

    assert report["success"] is True
    assert report["status"] == "RESOLVED"
    assert report["type"] == "HCL"
    assert report["backend_type"] == "kubernetes"
    assert report["region"] == "cn-beijing"


@pytest.mark.parametrize("configuration, status", [
    (Configuration(name="both", hcl="x", remote="https://github.com/a/b"), "VALIDATION_ERROR"),
    (Configuration(name="s3", hcl="x", backend=BackendSpec(
        backend_type="s3", s3=S3Backend(bucket="b", key="k", shared_credentials_secret=SecretSelector(
            name="aws", key="credentials", namespace="elsewhere")))), "RENDER_ERROR"),
])
def test_reconcile_surfaces_errors(store, configuration, status):
    store.add_configuration(configuration)
    report = ReconcileEngine(store=store).reconcile("default", configuration.name)

    assert report["success"] is False
    assert report["status"] == status
    assert report["error"]


def test_reconcile_persistence_failure(store, hcl_configuration, ready_provider):
    store.fail_on["update_configuration"] = StoreError("conflict")
    report = ReconcileEngine(store=store).reconcile("default", "oss-bucket")
    assert report["status"] == "PERSISTENCE_ERROR"


def test_reconcile_unknown_configuration(store):
    report = ReconcileEngine(store=store).reconcile("default", "ghost")
    assert report["status"] == "NOT_FOUND"


def test_reconcile_all_and_summary(store, hcl_configuration, remote_configuration, ready_provider):
    store.add_configuration(Configuration(name="broken", hcl=""))
    engine = ReconcileEngine(store=store)
    progress = []

    reports = engine.reconcile_all(progress_callback=lambda done, total: progress.append((done, total)))
    summary = engine.generate_summary(reports)

    assert progress[-1] == (3, 3)
    assert summary["total"] == 3
    assert summary["resolved"] == 2
    assert summary["failed"] == 1
    assert summary["regions_pinned"] == 2


def test_empty_summary(store):
    assert ReconcileEngine(store=store).generate_summary([])["total"] == 0


def test_check_delete(store, ready_provider):
    store.add_configuration(Configuration(
        name="busy", hcl="x", apply_state=ConfigurationState.PROVISIONING_AND_CHECKING.value))
    decision = ReconcileEngine(store=store).check_delete("default", "busy")

    assert decision["outcome"] == "Blocked"
    assert decision["deletable"] is False


def test_check_delete_lookup_error_propagates(store, hcl_configuration):
    store.fail_on["get_provider"] = StoreError("timeout")
    with pytest.raises(ProviderLookupError):
        ReconcileEngine(store=store).check_delete("default", "oss-bucket")


def test_engine_needs_a_store_or_workspace():
    with pytest.raises(ValueError):
        ReconcileEngine()


MIXED_WORKSPACE = """\
apiVersion: terraform.core.oam.dev/v1beta2
kind: Configuration
metadata:
  name: good
spec:
  hcl: x
---
apiVersion: terraform.core.oam.dev/v1beta2
kind: Configuration
metadata:
  name: bad
spec:
  hcl: x
  backend:
    backendType: kubernetes
    kubernetes:
      configSecret: kc
---
apiVersion: terraform.core.oam.dev/v1beta2
kind: Configuration
metadata:
  name: odd
  generation: abc
spec:
  hcl: x
"""


def test_reconcile_all_survives_malformed_manifests(tmp_path):
    (tmp_path / "workspace.yaml").write_text(MIXED_WORKSPACE)
    engine = ReconcileEngine(str(tmp_path))

    reports = engine.reconcile_all()

    assert [r["key"] for r in reports] == ["default/good"]
    assert reports[0]["success"] is True
    assert len(engine.store.skipped) == 2


def test_reconcile_of_malformed_configuration_reports_validation_state(tmp_path):
    (tmp_path / "workspace.yaml").write_text(MIXED_WORKSPACE)
    report = ReconcileEngine(str(tmp_path)).reconcile("default", "odd")

    assert report["status"] == "VALIDATION_ERROR"
    assert report["state"] == ConfigurationState.VALIDATION_ERROR.value


def test_validation_failure_carries_apply_state(store):
    store.add_configuration(Configuration(name="empty", hcl=""))
    report = ReconcileEngine(store=store).reconcile("default", "empty")

    assert report["state"] == "ConfigurationValidationError"
