"""Tests for repository.cluster_job_backend against a mocked BatchV1Api."""

import asyncio
from unittest.mock import AsyncMock

from kubernetes_asyncio import client

from repository.cluster_job_backend import ClusterJobBackend
from repository.namespaces import (
    OWNER_SELECTOR,
    STORAGE_BLOB_PREFIX_KEY,
    STORAGE_CONTAINER_KEY,
)


def make_backend(api=None, **kwargs):
    options = dict(
        namespace="batch-jobs",
        image="registry.local/job-worker:1",
        max_parallelism=10,
    )
    options.update(kwargs)
    return ClusterJobBackend(api or AsyncMock(), **options)


def observed(job: client.V1Job, succeeded: int) -> client.V1Job:
    job.status = client.V1JobStatus(succeeded=succeeded)
    return job


class TestBuildJob:
    def test_marker_parts_and_storage_annotations(self):
        job = make_backend().build_job("2025-01-abc", "jobs", "2025-01/abc", 3)
        assert job.metadata.name == "2025-01-abc"
        assert job.metadata.labels == {
            "created-by": "job-scheduler-api",
            "job-parts": "3",
        }
        assert job.metadata.annotations == {
            STORAGE_CONTAINER_KEY: "jobs",
            STORAGE_BLOB_PREFIX_KEY: "2025-01/abc",
        }

    def test_indexed_completions_and_capped_parallelism(self):
        job = make_backend(max_parallelism=4).build_job("j", "jobs", "p", 25)
        assert job.spec.completions == 25
        assert job.spec.parallelism == 4
        assert job.spec.completion_mode == "Indexed"
        assert job.spec.template.spec.restart_policy == "Never"

    def test_worker_environment(self):
        job = make_backend(secret_name="storage-creds", command="python -m worker").build_job(
            "j", "jobs", "2025-01/abc", 2
        )
        container = job.spec.template.spec.containers[0]
        env = {e.name: e.value for e in container.env}
        assert env == {
            "JOB_ID": "j",
            "STORAGE_CONTAINER": "jobs",
            "STORAGE_BLOB_PREFIX": "2025-01/abc",
            "JOB_PARTS": "2",
        }
        assert container.command == ["python", "-m", "worker"]
        assert container.env_from[0].secret_ref.name == "storage-creds"

    def test_no_secret_or_command_by_default(self):
        container = make_backend().build_job("j", "jobs", "p", 1).spec.template.spec.containers[0]
        assert container.command is None
        assert container.env_from is None


class TestClusterJobBackend:
    def test_create_posts_job_to_namespace(self):
        api = AsyncMock()
        api.create_namespaced_job.side_effect = lambda namespace, body: body
        handle = asyncio.run(make_backend(api).create("2025-01-abc", "jobs", "2025-01/abc", 3))

        namespace, body = api.create_namespaced_job.call_args.args
        assert namespace == "batch-jobs"
        assert body.metadata.name == "2025-01-abc"
        assert (handle.name, handle.backend, handle.completions, handle.parallelism) == (
            "2025-01-abc",
            "cluster",
            3,
            3,
        )

    def test_search_by_id_uses_marker_and_name(self):
        api = AsyncMock()
        api.list_namespaced_job.return_value = client.V1JobList(items=[])
        assert asyncio.run(make_backend(api).search("2025-01-abc")) == []
        api.list_namespaced_job.assert_awaited_once_with(
            "batch-jobs",
            label_selector=OWNER_SELECTOR,
            field_selector="metadata.name=2025-01-abc",
        )

    def test_listing_uses_marker_only(self):
        api = AsyncMock()
        api.list_namespaced_job.return_value = client.V1JobList(items=[])
        asyncio.run(make_backend(api).search(""))
        api.list_namespaced_job.assert_awaited_once_with(
            "batch-jobs", label_selector=OWNER_SELECTOR
        )

    def test_created_job_reads_back_as_status(self):
        backend = make_backend()
        job = observed(backend.build_job("2025-01-abc", "jobs", "2025-01/abc", 3), 1)
        status = backend.to_status(job)
        assert status.jobId == "2025-01-abc"
        assert (status.completions, status.succeeded, status.parts) == (3, 1, 3)
        assert status.storageContainer == "jobs"
        assert status.storageBlobPrefix == "2025-01/abc"
        assert status.backend == "cluster"

    def test_delete_propagates_to_pods(self):
        api = AsyncMock()
        asyncio.run(make_backend(api).delete("2025-01-abc"))
        api.delete_namespaced_job.assert_awaited_once_with(
            "2025-01-abc", "batch-jobs", propagation_policy="Background"
        )
