"""
FastAPI server for Kubestatus.

This module exposes the status pipeline over HTTP. Every request is a single
read-only run of the pipeline; nothing is cached or streamed between requests.

Key Components:
- create_app: Build the FastAPI application around a StatusPipeline
- GET /api/status: Resolve, collect and analyze a target; returns workloads as JSON
- GET /healthz: Liveness endpoint for the server itself
- run_server: Load Kubernetes configuration and serve with uvicorn

Example:
    ```python
    await run_server(kubeconfig=None, context=None, host="0.0.0.0", port=8080)
    ```
"""

import os
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query

from .constants import DEFAULT_MAX_WORKERS, DEFAULT_SORT_KEY, DEFAULT_UVICORN_LOG_LEVEL, ENV_UVICORN_LEVEL
from .exceptions import (
    ConfigurationError, InvalidSelectorError, KubernetesConnectionError, KubestatusError, NoPodsFoundError,
    ResourceNotFoundError,
)
from .kube import load_kube, log_exception
from .models import StatusOptions
from .pipeline import StatusPipeline
from .serialization import workloads_to_dict
from .validation import validate_sort_key


def create_app(pipeline: StatusPipeline) -> FastAPI:
    """Build the FastAPI application serving ``pipeline``."""
    app = FastAPI(title="kubestatus")

    @app.get("/healthz")
    async def healthz() -> Dict[str, Any]:
        return {"ok": True}

    @app.get("/api/status")
    async def status(
        target: Optional[str] = None,
        namespace: str = "",
        all_namespaces: bool = False,
        selector: str = "",
        events: bool = False,
        logs: bool = False,
        env: bool = False,
        wide: bool = False,
        container: Optional[str] = None,
        problematic: bool = False,
        sort: str = Query(DEFAULT_SORT_KEY),
    ) -> Dict[str, Any]:
        try:
            options = StatusOptions(
                namespace=namespace,
                all_namespaces=all_namespaces,
                selector=selector,
                resource_name=target or "",
                show_events=events,
                show_logs=logs,
                show_env=env,
                extended_detail=wide,
                container_filter=container,
                problematic=problematic,
                sort_by=validate_sort_key(sort),
            )
            workloads = await pipeline.run(options)
        except (ConfigurationError, InvalidSelectorError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        except (ResourceNotFoundError, NoPodsFoundError) as e:
            raise HTTPException(status_code=404, detail=str(e))
        except KubestatusError as e:
            log_exception("[api] Status request failed", e)
            raise HTTPException(status_code=502, detail=str(e))
        return workloads_to_dict(workloads)

    return app


async def run_server(
    kubeconfig: Optional[str],
    context: Optional[str],
    port: int,
    host: str = "127.0.0.1",
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> None:
    """Run the Kubestatus server with proper error handling."""
    try:
        kube = await load_kube(kubeconfig, context)
    except KubernetesConnectionError as e:
        log_exception("[server] Failed to load Kubernetes configuration", e)
        raise

    app = create_app(StatusPipeline(kube, max_workers=max_workers))

    import uvicorn
    uvicorn_log_level = os.getenv(ENV_UVICORN_LEVEL, DEFAULT_UVICORN_LOG_LEVEL)
    config = uvicorn.Config(app, host=host, port=port, log_level=uvicorn_log_level)
    server = uvicorn.Server(config)
    await server.serve()
