"""
kubectl adapter.

``kubectl get ... -o json`` is parsed exactly and projected onto one
status line per resource, keyed by ``namespace/name``. The compactor then
renders that projection like any other structured value. JSON that is not
a Kubernetes object is returned as-is.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from .base import Adapter

MAX_ITEMS = 15
MAX_EVENT_CHARS = 80


def _get(obj: Any, *path: str, default: Any = None) -> Any:
    for key in path:
        if not isinstance(obj, dict):
            return default
        obj = obj.get(key)
    return default if obj is None else obj


def is_kube_object(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and isinstance(value.get("kind"), str)
        and "apiVersion" in value
        and (isinstance(value.get("items"), list) or isinstance(value.get("metadata"), dict))
    )


def _label(item: dict[str, Any]) -> str:
    name = _get(item, "metadata", "name", default="-")
    namespace = _get(item, "metadata", "namespace", default="")
    return f"{namespace}/{name}" if namespace else name


def _restarts(item: dict[str, Any]) -> int:
    statuses = _get(item, "status", "containerStatuses", default=[])
    return sum(s.get("restartCount", 0) for s in statuses if isinstance(s, dict))


def _pod_status(item: dict[str, Any]) -> str:
    statuses = [
        s for s in _get(item, "status", "containerStatuses", default=[]) if isinstance(s, dict)
    ]
    phase = _get(item, "status", "phase", default="Unknown")
    for s in statuses:
        reason = _get(s, "state", "waiting", "reason")
        if reason:
            phase = reason
            break
    ready = sum(1 for s in statuses if s.get("ready"))
    status = f"{phase} {ready}/{len(statuses)}"
    restarts = _restarts(item)
    if restarts:
        status += f", {restarts} restarts"
    return status


def _deployment_status(item: dict[str, Any]) -> str:
    replicas = _get(item, "status", "replicas", default=0)
    ready = _get(item, "status", "readyReplicas", default=0)
    available = _get(item, "status", "availableReplicas", default=0)
    return f"{ready}/{replicas} ready, {available} available"


def _node_status(item: dict[str, Any]) -> str:
    conditions = _get(item, "status", "conditions", default=[])
    ready = any(
        c.get("type") == "Ready" and c.get("status") == "True"
        for c in conditions
        if isinstance(c, dict)
    )
    version = _get(item, "status", "nodeInfo", "kubeletVersion", default="-")
    cpu = _get(item, "status", "capacity", "cpu", default="-")
    memory = _get(item, "status", "capacity", "memory", default="-")
    return f"{'Ready' if ready else 'NotReady'} {version} cpu={cpu} mem={memory}"


def _service_status(item: dict[str, Any]) -> str:
    kind = _get(item, "spec", "type", default="ClusterIP")
    ip = _get(item, "spec", "clusterIP", default="-")
    ports = ",".join(
        f"{p.get('port')}/{p.get('protocol', 'TCP')}"
        for p in _get(item, "spec", "ports", default=[])
        if isinstance(p, dict)
    )
    return f"{kind} {ip} {ports}".rstrip()


def _job_status(item: dict[str, Any]) -> str:
    active = _get(item, "status", "active", default=0)
    succeeded = _get(item, "status", "succeeded", default=0)
    failed = _get(item, "status", "failed", default=0)
    if active:
        return f"{active} active"
    if failed:
        return f"{failed} failed, {succeeded} succeeded"
    return f"{succeeded} succeeded"


def _replica_set_status(item: dict[str, Any]) -> str:
    desired = _get(item, "status", "desiredNumberScheduled", default=None)
    if desired is None:
        desired = _get(item, "status", "replicas", default=0)
    ready = _get(item, "status", "numberReady", default=None)
    if ready is None:
        ready = _get(item, "status", "readyReplicas", default=0)
    return f"{ready}/{desired} ready"


def _event_status(item: dict[str, Any]) -> str:
    reason = item.get("reason") or "-"
    message = (item.get("message") or "")[:MAX_EVENT_CHARS]
    count = item.get("count") or 1
    return f"{reason} (x{count}) {message}" if count > 1 else f"{reason} {message}"


def _data_status(item: dict[str, Any]) -> str:
    data = item.get("data")
    return f"{len(data) if isinstance(data, dict) else 0} keys"


def _ingress_status(item: dict[str, Any]) -> str:
    rules = _get(item, "spec", "rules", default=[])
    hosts = [r["host"] for r in rules if isinstance(r, dict) and r.get("host")]
    return ", ".join(hosts) if hosts else "no rules"


def _generic_status(item: dict[str, Any]) -> str:
    return _get(item, "status", "phase", default="-")


_STATUS = {
    "Pod": _pod_status,
    "Deployment": _deployment_status,
    "Node": _node_status,
    "Service": _service_status,
    "Job": _job_status,
    "DaemonSet": _replica_set_status,
    "StatefulSet": _replica_set_status,
    "ReplicaSet": _replica_set_status,
    "Event": _event_status,
    "ConfigMap": _data_status,
    "Secret": _data_status,
    "Ingress": _ingress_status,
}


def resource_status(item: dict[str, Any], kind: str) -> str:
    return _STATUS.get(kind, _generic_status)(item)


def summarize(doc: dict[str, Any]) -> dict[str, Any]:
    """Project a Kubernetes object or list onto name -> status."""
    if not isinstance(doc.get("items"), list):
        return {
            "kind": doc["kind"],
            "name": _label(doc),
            "status": resource_status(doc, doc["kind"]),
        }

    items = [i for i in doc["items"] if isinstance(i, dict)]
    list_kind = doc["kind"]
    default_kind = list_kind[: -len("List")] if list_kind.endswith("List") else ""
    kinds = {i.get("kind") or default_kind for i in items}
    mixed = len(kinds) > 1

    summary: dict[str, Any] = {"kind": list_kind, "count": len(items)}
    if "Pod" in kinds:
        phases = Counter(_get(i, "status", "phase", default="Unknown") for i in items)
        summary["phases"] = dict(phases.most_common())
        summary["restarts"] = sum(_restarts(i) for i in items)

    resources = {}
    for item in items[:MAX_ITEMS]:
        kind = item.get("kind") or default_kind
        label = f"{kind}/{_label(item)}" if mixed else _label(item)
        resources[label] = resource_status(item, kind)
    summary["items"] = resources
    if len(items) > MAX_ITEMS:
        summary["more"] = len(items) - MAX_ITEMS
    return summary


class KubectlAdapter(Adapter):
    name = "kubectl"
    description = "kubectl get -o json: one status line per resource"

    def try_structured_parse(self, data: bytes) -> Any:
        value = super().try_structured_parse(data)
        if is_kube_object(value):
            return summarize(value)
        return value
