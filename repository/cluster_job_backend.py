# repository/cluster_job_backend.py
import logging
import shlex
from typing import List, Optional
from kubernetes_asyncio import client
from core.dispatcher import parallelism_for
from core.entities import JobHandle
from core.interfaces import JobBackend
from core.status import status_from_cluster_job
from model.job import DomainJobStatus
from repository.namespaces import (
    CREATED_BY_LABEL,
    CREATED_BY_VALUE,
    OWNER_SELECTOR,
    PARTS_LABEL,
    STORAGE_BLOB_PREFIX_KEY,
    STORAGE_CONTAINER_KEY,
)
from util.enums import BackendKind

logger = logging.getLogger(__name__)

WORKER_CONTAINER_NAME = "worker"


class ClusterJobBackend(JobBackend):
    """
    Kubernetes batch/v1 Jobs in Indexed completion mode.

    Each pod gets JOB_COMPLETION_INDEX from Kubernetes and reads partition
    <STORAGE_BLOB_PREFIX>/<index> from STORAGE_CONTAINER.
    """

    kind = BackendKind.CLUSTER.value

    def __init__(
        self,
        api: client.BatchV1Api,
        *,
        namespace: str,
        image: str,
        max_parallelism: int,
        command: Optional[str] = None,
        secret_name: Optional[str] = None,
        backoff_limit: int = 6,
        ttl_seconds_after_finished: Optional[int] = None,
    ) -> None:
        self._api = api
        self._namespace = namespace
        self._image = image
        self._max_parallelism = max_parallelism
        self._command = command
        self._secret_name = secret_name
        self._backoff_limit = backoff_limit
        self._ttl = ttl_seconds_after_finished

    def build_job(
        self,
        job_id: str,
        storage_container: str,
        address_prefix: str,
        locations_count: int,
    ) -> client.V1Job:
        labels = {
            CREATED_BY_LABEL: CREATED_BY_VALUE,
            PARTS_LABEL: str(locations_count),
        }
        container = client.V1Container(
            name=WORKER_CONTAINER_NAME,
            image=self._image,
            command=shlex.split(self._command) if self._command else None,
            env=[
                client.V1EnvVar(name="JOB_ID", value=job_id),
                client.V1EnvVar(name="STORAGE_CONTAINER", value=storage_container),
                client.V1EnvVar(name="STORAGE_BLOB_PREFIX", value=address_prefix),
                client.V1EnvVar(name="JOB_PARTS", value=str(locations_count)),
            ],
            env_from=(
                [
                    client.V1EnvFromSource(
                        secret_ref=client.V1SecretEnvSource(name=self._secret_name)
                    )
                ]
                if self._secret_name
                else None
            ),
        )
        return client.V1Job(
            api_version="batch/v1",
            kind="Job",
            metadata=client.V1ObjectMeta(
                name=job_id,
                labels=labels,
                annotations={
                    STORAGE_CONTAINER_KEY: storage_container,
                    STORAGE_BLOB_PREFIX_KEY: address_prefix,
                },
            ),
            spec=client.V1JobSpec(
                completions=locations_count,
                parallelism=parallelism_for(locations_count, self._max_parallelism),
                completion_mode="Indexed",
                backoff_limit=self._backoff_limit,
                ttl_seconds_after_finished=self._ttl,
                template=client.V1PodTemplateSpec(
                    metadata=client.V1ObjectMeta(labels=labels),
                    spec=client.V1PodSpec(
                        restart_policy="Never", containers=[container]
                    ),
                ),
            ),
        )

    async def create(
        self,
        job_id: str,
        storage_container: str,
        address_prefix: str,
        locations_count: int,
    ) -> JobHandle:
        body = self.build_job(job_id, storage_container, address_prefix, locations_count)
        created = await self._api.create_namespaced_job(self._namespace, body)
        return JobHandle(
            name=created.metadata.name,
            backend=self.kind,
            completions=body.spec.completions,
            parallelism=body.spec.parallelism,
        )

    async def search(self, job_id: str = "") -> List[client.V1Job]:
        kwargs = {"label_selector": OWNER_SELECTOR}
        if job_id:
            kwargs["field_selector"] = f"metadata.name={job_id}"
        jobs = await self._api.list_namespaced_job(self._namespace, **kwargs)
        return list(jobs.items or [])

    def to_status(self, native: client.V1Job) -> DomainJobStatus:
        return status_from_cluster_job(native)

    async def delete(self, job_id: str) -> None:
        # Background propagation removes the job's pods too.
        await self._api.delete_namespaced_job(
            job_id, self._namespace, propagation_policy="Background"
        )
        logger.info("cluster.delete job=%s namespace=%s", job_id, self._namespace)
