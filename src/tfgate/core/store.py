#!/usr/bin/env python3
"""
TFGATE RESOURCE STORE
---------------------
The get/update/create contract the core consumes from the resource
store, plus two implementations:

* InMemoryStore  - dict backed, used by tests and embedding callers.
* ManifestStore  - a workspace directory of Kubernetes YAML manifests,
                   loaded with ruamel.yaml and written back atomically.

Timeouts, retries and watch semantics belong to the real API server
client and are not modelled here.

Author: TFGate Team
Date: 2026-10-18
"""

import copy
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from tfgate.core.errors import ResourceExistsError, ResourceNotFoundError, StoreError, ValidationError
from tfgate.core.exporter import ManifestExporter
from tfgate.core.models import Configuration, Provider, Secret
from tfgate.validator.validator import ManifestValidator

logger = logging.getLogger("tfgate.store")


class ResourceStore(ABC):
    """What the core needs from the cluster."""

    @abstractmethod
    def get_configuration(self, namespace: str, name: str) -> Configuration:
        ...

    @abstractmethod
    def update_configuration(self, configuration: Configuration) -> None:
        ...

    @abstractmethod
    def list_configurations(self, namespace: Optional[str] = None) -> List[Configuration]:
        ...

    @abstractmethod
    def get_secret(self, namespace: str, name: str) -> Secret:
        ...

    @abstractmethod
    def create_secret(self, secret: Secret) -> None:
        ...

    @abstractmethod
    def get_provider(self, namespace: str, name: str) -> Provider:
        ...


class InMemoryStore(ResourceStore):
    """
    Dict-backed store. Objects are deep-copied in and out so callers never
    share state with the store.

    `fail_on` maps an operation name (e.g. "update_configuration") to an
    exception instance raised when that operation is called.
    """

    def __init__(self):
        self.configurations: Dict[Tuple[str, str], Configuration] = {}
        self.providers: Dict[Tuple[str, str], Provider] = {}
        self.secrets: Dict[Tuple[str, str], Secret] = {}
        self.fail_on: Dict[str, Exception] = {}
        self.calls: List[str] = []

    def _enter(self, op: str):
        self.calls.append(op)
        if op in self.fail_on:
            raise self.fail_on[op]

    # Seeding helpers
    def add_configuration(self, configuration: Configuration) -> Configuration:
        self.configurations[(configuration.namespace, configuration.name)] = copy.deepcopy(configuration)
        return configuration

    def add_provider(self, provider: Provider) -> Provider:
        self.providers[(provider.namespace, provider.name)] = copy.deepcopy(provider)
        return provider

    def add_secret(self, secret: Secret) -> Secret:
        self.secrets[(secret.namespace, secret.name)] = copy.deepcopy(secret)
        return secret

    def get_configuration(self, namespace: str, name: str) -> Configuration:
        self._enter("get_configuration")
        try:
            return copy.deepcopy(self.configurations[(namespace, name)])
        except KeyError:
            raise ResourceNotFoundError("Configuration", namespace, name) from None

    def update_configuration(self, configuration: Configuration) -> None:
        self._enter("update_configuration")
        key = (configuration.namespace, configuration.name)
        if key not in self.configurations:
            raise ResourceNotFoundError("Configuration", *key)
        self.configurations[key] = copy.deepcopy(configuration)

    def list_configurations(self, namespace: Optional[str] = None) -> List[Configuration]:
        self._enter("list_configurations")
        return [copy.deepcopy(c) for (ns, _), c in sorted(self.configurations.items())
                if namespace is None or ns == namespace]

    def get_secret(self, namespace: str, name: str) -> Secret:
        self._enter("get_secret")
        try:
            return copy.deepcopy(self.secrets[(namespace, name)])
        except KeyError:
            raise ResourceNotFoundError("Secret", namespace, name) from None

    def create_secret(self, secret: Secret) -> None:
        self._enter("create_secret")
        key = (secret.namespace, secret.name)
        if key in self.secrets:
            raise ResourceExistsError("Secret", *key)
        self.secrets[key] = copy.deepcopy(secret)

    def get_provider(self, namespace: str, name: str) -> Provider:
        self._enter("get_provider")
        try:
            return copy.deepcopy(self.providers[(namespace, name)])
        except KeyError:
            raise ResourceNotFoundError("Provider", namespace, name) from None


class ManifestStore(ResourceStore):
    """
    A workspace of YAML manifests acting as the resource store.
    Multi-document files are supported; objects created by the core are
    written under `<workspace>/_generated/`.
    """

    GENERATED_DIR = "_generated"

    def __init__(self, workspace_path: str, extensions: Tuple[str, ...] = (".yaml", ".yml"),
                 strict: bool = False):
        self.workspace = Path(workspace_path).resolve()
        if not self.workspace.is_dir():
            raise StoreError(f"Workspace {self.workspace} is not a directory")
        self.extensions = extensions
        self.strict = strict
        self.yaml = YAML(typ='rt')
        self.exporter = ManifestExporter()
        self.validator = ManifestValidator()
        # file -> list of documents (CommentedMaps)
        self.files: Dict[Path, List[Any]] = {}
        # (kind, namespace, name) -> (file, index)
        self.index: Dict[Tuple[str, str, str], Tuple[Path, int]] = {}
        self.skipped: List[Dict[str, str]] = []
        self.reload()

    def reload(self):
        self.files.clear()
        self.index.clear()
        self.skipped.clear()
        targets = sorted(
            f for f in self.workspace.rglob("*")
            if f.is_file() and not f.is_symlink() and f.suffix.lower() in self.extensions
        )
        for file_path in targets:
            self._load_file(file_path)
        logger.info(f"Loaded {len(self.index)} objects from {len(self.files)} files in {self.workspace}")

    def _load_file(self, file_path: Path):
        try:
            docs = [d for d in self.yaml.load_all(file_path.read_text(encoding='utf-8-sig'))]
        except (YAMLError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping unreadable manifest {file_path}: {e}")
            self.skipped.append({"file_path": str(file_path), "reason": str(e)})
            return

        self.files[file_path] = docs
        for i, doc in enumerate(docs):
            if not self.validator.is_known_kind(doc):
                continue
            valid, msg = self.validator.validate(doc, strict=self.strict)
            if not valid:
                logger.warning(f"Skipping {doc.get('kind')} in {file_path}: {msg}")
                self.skipped.append({"file_path": str(file_path), "reason": msg})
                continue
            metadata = doc["metadata"]
            key = (doc["kind"], metadata.get("namespace") or "default", metadata["name"])
            if key in self.index:
                logger.warning(f"Duplicate {key[0]} {key[1]}/{key[2]} in {file_path}; keeping first")
                continue
            self.index[key] = (file_path, i)

    def _doc(self, kind: str, namespace: str, name: str) -> Any:
        try:
            file_path, i = self.index[(kind, namespace, name)]
        except KeyError:
            raise ResourceNotFoundError(kind, namespace, name) from None
        return self.files[file_path][i]

    def _atomic_write(self, target_path: Path, content: str):
        target_path.parent.mkdir(parents=True, exist_ok=True)
        if not os.access(target_path.parent, os.W_OK):
            raise StoreError(f"No write access to {target_path.parent}")
        temp_file = target_path.with_suffix('.tfgate.tmp')
        try:
            temp_file.write_text(content, encoding='utf-8')
            os.replace(temp_file, target_path)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StoreError(f"Atomic write failed for {target_path}: {e}") from e

    def get_configuration(self, namespace: str, name: str) -> Configuration:
        return Configuration.from_manifest(self._doc("Configuration", namespace, name))

    def update_configuration(self, configuration: Configuration) -> None:
        self._doc("Configuration", configuration.namespace, configuration.name)
        file_path, i = self.index[("Configuration", configuration.namespace, configuration.name)]
        # Stage on a copy so a failed write leaves the loaded state untouched
        staged = copy.deepcopy(self.files[file_path])
        self.exporter.merge_into(staged[i], configuration.to_manifest())
        self._atomic_write(file_path, self.exporter.export(staged))
        self.files[file_path] = staged

    def list_configurations(self, namespace: Optional[str] = None) -> List[Configuration]:
        configurations = []
        for (kind, ns, name) in sorted(self.index):
            if kind != "Configuration" or (namespace is not None and ns != namespace):
                continue
            try:
                configurations.append(Configuration.from_manifest(self._doc(kind, ns, name)))
            except ValidationError as e:
                logger.warning(f"Skipping Configuration {ns}/{name}: {e}")
                entry = {"file_path": str(self.index[(kind, ns, name)][0]), "reason": str(e)}
                if entry not in self.skipped:
                    self.skipped.append(entry)
        return configurations

    def get_secret(self, namespace: str, name: str) -> Secret:
        return Secret.from_manifest(self._doc("Secret", namespace, name))

    def create_secret(self, secret: Secret) -> None:
        key = ("Secret", secret.namespace, secret.name)
        if key in self.index:
            raise ResourceExistsError(*key)
        file_path = self.workspace / self.GENERATED_DIR / f"secret-{secret.namespace}-{secret.name}.yaml"
        docs = [self.exporter.to_commented(secret.to_manifest())]
        self._atomic_write(file_path, self.exporter.export(docs))
        self.files[file_path] = docs
        self.index[key] = (file_path, 0)

    def get_provider(self, namespace: str, name: str) -> Provider:
        return Provider.from_manifest(self._doc("Provider", namespace, name))
