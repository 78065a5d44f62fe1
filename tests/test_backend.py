import pytest

from tfgate.core.errors import BackendRenderError, SecretNotFoundError, ValidationError
from tfgate.core.models import (
    BackendSpec,
    Configuration,
    HCLSource,
    KubernetesBackend,
    RemoteSource,
    S3Backend,
    SecretSelector,
)
from tfgate.resolution.backend import BackendPolicy, BackendRenderer, replicated_secret_name
from tfgate.resolution.classifier import classify
from tfgate.resolution.secrets import SecretReplicator


@pytest.fixture
def renderer(store):
    return BackendRenderer(SecretReplicator(store))


def test_default_backend_block():
    block = BackendPolicy().compose(Configuration(name="vpc", hcl="x"), "vela-system")

    assert block.backend_type == "kubernetes"
    assert block.use_custom is False
    assert block.secret_refs == []
    assert 'backend "kubernetes" {' in block.hcl
    assert 'secret_suffix     = "vpc"' in block.hcl
    assert 'in_cluster_config = true' in block.hcl
    assert 'namespace         = "vela-system"' in block.hcl


def test_default_backend_honours_secret_suffix():
    cfg = Configuration(name="vpc", hcl="x", backend=BackendSpec(secret_suffix="prod"))
    block = BackendPolicy().compose(cfg, "vela-system")
    assert '"prod"' in block.hcl
    assert block.use_custom is False


def test_inline_body_comes_before_backend(renderer, hcl_configuration):
    text, descriptor = renderer.render(hcl_configuration, "vela-system", classify(hcl_configuration))

    assert text.startswith(hcl_configuration.hcl)
    assert text.index(hcl_configuration.hcl) < text.index("terraform {")
    assert text == hcl_configuration.hcl + "\n" + descriptor.rendered_block
    assert descriptor.backend_type == "kubernetes"
    assert descriptor.secrets == {}


def test_remote_renders_backend_alone(renderer, remote_configuration):
    text, descriptor = renderer.render(remote_configuration, "vela-system", classify(remote_configuration))
    assert text == descriptor.rendered_block


def test_inline_backend_is_custom(renderer):
    cfg = Configuration(name="c", hcl="x", backend=BackendSpec(
        inline='terraform {\n  backend "s3" {\n    bucket = "b"\n  }\n}'))
    text, descriptor = renderer.render(cfg, "vela-system", HCLSource(cfg.hcl))

    assert descriptor.backend_type == "s3"
    assert descriptor.use_custom is True
    assert text.endswith(descriptor.rendered_block)


def test_bare_inline_backend_is_wrapped():
    cfg = Configuration(name="c", hcl="x", backend=BackendSpec(inline='backend "gcs" {\n  bucket = "b"\n}'))
    block = BackendPolicy().compose(cfg, "vela-system")
    assert block.hcl.startswith("terraform {\n  backend \"gcs\" {")
    assert block.hcl.rstrip().endswith("}")


def test_cross_namespace_kubernetes_backend_replicates_secret(store, renderer, backend_secret):
    cfg = Configuration(name="c", namespace="default", hcl="x", backend=BackendSpec(
        backend_type="kubernetes",
        kubernetes=KubernetesBackend(secret_suffix="c", namespace="state",
                                     config_secret=SecretSelector(name="kubeconfig", key="config",
                                                                  namespace="infra"))))
    _, descriptor = renderer.render(cfg, "vela-system", HCLSource(cfg.hcl))
    local = replicated_secret_name("infra", "kubeconfig")

    assert local.startswith("tfgate-backend-kubeconfig-")
    assert descriptor.use_custom is True
    assert descriptor.secrets == {local: ["config"]}
    assert ("default", local) in store.secrets
    assert f'config_path   = "/tfgate-backend-secret/{local}/config"' in descriptor.rendered_block


def test_replicated_names_do_not_collide_across_namespaces():
    # Both pairs flatten to "a-b-c" when joined with a dash
    assert replicated_secret_name("a-b", "c") != replicated_secret_name("a", "b-c")
    assert replicated_secret_name("infra", "kubeconfig") == replicated_secret_name("infra", "kubeconfig")


def test_s3_backend_uses_configuration_region(store):
    cfg = Configuration(name="c", hcl="x", region="us-east-1", backend=BackendSpec(
        backend_type="s3", s3=S3Backend(bucket="tf-state", key="c.tfstate")))
    block = BackendPolicy().compose(cfg, "vela-system")

    assert block.backend_type == "s3"
    assert 'region = "us-east-1"' in block.hcl
    assert block.secret_refs == []


@pytest.mark.parametrize("spec", [
    BackendSpec(inline='backend "s3" {}', backend_type="s3"),
    BackendSpec(backend_type="consul"),
    BackendSpec(backend_type="kubernetes"),
    BackendSpec(backend_type="s3", s3=S3Backend(bucket="", key="k")),
    BackendSpec(inline="bucket = 1"),
    BackendSpec(in_cluster_config=False),
    BackendSpec(in_cluster_config=False, backend_type="s3", s3=S3Backend(bucket="b", key="k")),
])
def test_invalid_backend_specs(spec):
    with pytest.raises(ValidationError):
        BackendPolicy().compose(Configuration(name="c", hcl="x", backend=spec), "vela-system")


def test_invalid_backend_is_wrapped(renderer):
    cfg = Configuration(name="c", hcl="x", backend=BackendSpec(backend_type="consul"))
    with pytest.raises(BackendRenderError) as exc:
        renderer.render(cfg, "vela-system", HCLSource("x"))
    assert isinstance(exc.value.__cause__, ValidationError)


def test_replication_failure_is_wrapped(renderer):
    cfg = Configuration(name="c", hcl="x", backend=BackendSpec(
        backend_type="s3", s3=S3Backend(bucket="b", key="k", shared_credentials_secret=SecretSelector(
            name="aws", key="credentials", namespace="missing"))))
    with pytest.raises(BackendRenderError) as exc:
        renderer.render(cfg, "vela-system", RemoteSource("https://github.com/org/repo"))
    assert isinstance(exc.value.__cause__, SecretNotFoundError)
