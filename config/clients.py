# config/clients.py
"""
Process-wide SDK handles.

Each client is built lazily on first use, shared by every request, and
closed once in the app lifespan. Locks keep concurrent first requests from
building two clients.
"""
import asyncio
import logging
import threading
from typing import Optional
from azure.batch import BatchServiceClient
from azure.batch.batch_auth import SharedKeyCredentials
from azure.identity.aio import DefaultAzureCredential
from azure.storage.blob.aio import BlobServiceClient
from kubernetes_asyncio import client as k8s_client
from kubernetes_asyncio import config as k8s_config
from redis.asyncio import Redis, from_url
from config.settings import settings

logger = logging.getLogger(__name__)

_redis: Optional[Redis] = None
_blob_service: Optional[BlobServiceClient] = None
_blob_credential: Optional[DefaultAzureCredential] = None
_k8s_api_client: Optional[k8s_client.ApiClient] = None
_batch_client: Optional[BatchServiceClient] = None

_async_lock = asyncio.Lock()
_batch_lock = threading.Lock()


async def get_redis() -> Redis:
    global _redis
    if _redis is None:
        async with _async_lock:
            if _redis is None:
                client = from_url(
                    settings.REDIS_URL,
                    encoding="utf-8",
                    decode_responses=False,
                    socket_keepalive=True,
                    health_check_interval=30,
                )
                # Fail fast on startup if Redis is unreachable.
                await client.ping()
                _redis = client
    return _redis


async def get_blob_service() -> BlobServiceClient:
    global _blob_service, _blob_credential
    if _blob_service is None:
        async with _async_lock:
            if _blob_service is None:
                if settings.STORAGE_CONNECTION_STRING:
                    logger.info("clients.blob.init mode=connection_string")
                    _blob_service = BlobServiceClient.from_connection_string(
                        settings.STORAGE_CONNECTION_STRING
                    )
                elif settings.STORAGE_ACCOUNT_NAME:
                    logger.info(
                        "clients.blob.init mode=default_credential account=%s",
                        settings.STORAGE_ACCOUNT_NAME,
                    )
                    _blob_credential = DefaultAzureCredential()
                    _blob_service = BlobServiceClient(
                        account_url=f"https://{settings.STORAGE_ACCOUNT_NAME}.blob.core.windows.net",
                        credential=_blob_credential,
                    )
                else:
                    raise RuntimeError(
                        "Blob storage requires STORAGE_CONNECTION_STRING or STORAGE_ACCOUNT_NAME"
                    )
    return _blob_service


async def get_k8s_api() -> k8s_client.BatchV1Api:
    global _k8s_api_client
    if _k8s_api_client is None:
        async with _async_lock:
            if _k8s_api_client is None:
                if settings.K8S_IN_CLUSTER:
                    k8s_config.load_incluster_config()
                else:
                    await k8s_config.load_kube_config(config_file=settings.KUBECONFIG)
                logger.info(
                    "clients.k8s.init in_cluster=%s namespace=%s",
                    settings.K8S_IN_CLUSTER,
                    settings.K8S_NAMESPACE,
                )
                _k8s_api_client = k8s_client.ApiClient()
    return k8s_client.BatchV1Api(_k8s_api_client)


def get_batch_client() -> Optional[BatchServiceClient]:
    """None when the managed backend is not configured."""
    global _batch_client
    if not settings.managed_backend_enabled:
        return None
    if _batch_client is None:
        with _batch_lock:
            if _batch_client is None:
                logger.info("clients.batch.init url=%s", settings.BATCH_ACCOUNT_URL)
                credentials = SharedKeyCredentials(
                    settings.BATCH_ACCOUNT_NAME, settings.BATCH_ACCOUNT_KEY
                )
                _batch_client = BatchServiceClient(
                    credentials, batch_url=settings.BATCH_ACCOUNT_URL
                )
    return _batch_client


async def close_clients() -> None:
    global _redis, _blob_service, _blob_credential, _k8s_api_client, _batch_client
    if _redis is not None:
        await _redis.aclose()
        _redis = None
    if _blob_service is not None:
        await _blob_service.close()
        _blob_service = None
    if _blob_credential is not None:
        await _blob_credential.close()
        _blob_credential = None
    if _k8s_api_client is not None:
        await _k8s_api_client.close()
        _k8s_api_client = None
    if _batch_client is not None:
        _batch_client.close()
        _batch_client = None
