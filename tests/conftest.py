import pytest

from tfgate.core.models import Configuration, Provider, ProviderState, Secret
from tfgate.core.store import InMemoryStore


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def ready_provider(store):
    return store.add_provider(Provider(name="default", namespace="default", provider="alibaba",
                                       region="cn-beijing", state=ProviderState.READY.value))


@pytest.fixture
def hcl_configuration(store):
    return store.add_configuration(Configuration(
        name="oss-bucket",
        namespace="default",
        hcl='resource "alicloud_oss_bucket" "b" {\n  bucket = var.bucket\n}\n',
    ))


@pytest.fixture
def remote_configuration(store):
    return store.add_configuration(Configuration(
        name="rds",
        namespace="default",
        remote="https://github.com/kubevela-contrib/terraform-modules.git",
        path="alibaba/rds",
    ))


@pytest.fixture
def backend_secret(store):
    return store.add_secret(Secret(
        name="kubeconfig",
        namespace="infra",
        data={"config": "YXBpVmVyc2lvbjogdjE=", "token": "c2VjcmV0"},
        labels={"team": "infra"},
        annotations={"owner": "platform"},
    ))
