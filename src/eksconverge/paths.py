from __future__ import annotations

import os
import pathlib

CLUSTER_YAML = "cluster.yaml"


class Paths:
    @property
    def root(self) -> pathlib.Path:
        """Directory holding one ``<cluster>/cluster.yaml`` per managed cluster.

        Taken from ``EKSCONVERGE_ROOT``; a RuntimeError is raised when it is unset.
        """
        root = os.environ.get("EKSCONVERGE_ROOT", "")
        if root == "":
            msg = "EKSCONVERGE_ROOT is not set; point it at the directory of cluster configs."
            raise RuntimeError(msg)

        return pathlib.Path(root)

    def cluster_dir(self, name: str) -> pathlib.Path:
        return self.root / name

    def cluster_yaml(self, name: str) -> pathlib.Path:
        return self.cluster_dir(name) / CLUSTER_YAML
