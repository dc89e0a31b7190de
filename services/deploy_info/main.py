"""
Deploy Info Service.

This service provides:
- An explicit deploy info context combining git queries and deploy classification
- Snapshot-then-read property getters over one aggregate record
- A read-only REST API over the same context
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from config.settings import Settings, get_settings
from shared.models import (
    CommitRecord, DeploymentInfo, DeploymentSummary, DeployStatus, InfoRecord, Snapshot
)
from services.deploy_info.classifier import (
    classify, compile_pattern, determine_status, matching_commits
)
from services.deploy_info.report import info_to_dict, render_report
from services.deploy_info.repository import RepositoryQueryFacade
from services.deploy_info.snapshot import build_snapshot

logger = logging.getLogger(__name__)


class DeployInfoService:
    """
    Deploy info context.

    Construct one per process (or per test) and hand it to consumers. The
    snapshot is fixed at construction. ``build_info`` queries git afresh on
    every call; the property getters read from the record captured by the
    last ``refresh`` so that values read together stay consistent.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        facade: Optional[RepositoryQueryFacade] = None,
        snapshot: Optional[Snapshot] = None,
        pattern: Optional[str] = None,
    ):
        self.settings = settings or get_settings()
        self.facade = facade or RepositoryQueryFacade(
            self.settings.git.repo_path, timeout=self.settings.git.command_timeout
        )
        if pattern is not None and pattern.strip():
            self.pattern = pattern
        else:
            self.pattern = self.settings.deploy.effective_pattern
        # raises re.error for an invalid override
        self._compiled = compile_pattern(self.pattern)
        self.snapshot = snapshot or build_snapshot(self.settings, short_hash=self.facade.short_hash())
        self._info: Optional[InfoRecord] = None

    def deployment_info(self, history: Optional[List[CommitRecord]]) -> DeploymentInfo:
        """Classify ``history``; None means it could not be read."""
        if history is None:
            return DeploymentInfo(
                status=DeployStatus.UNKNOWN,
                history_available=False,
                pattern=self.pattern,
            )
        summary = classify(history, self._compiled)
        return DeploymentInfo(
            status=determine_status(history, self._compiled),
            history_available=True,
            pattern=self.pattern,
            count=summary.count,
            last_qualifying=summary.last_qualifying,
        )

    def deployment_summary(self) -> DeploymentSummary:
        """Fresh classification of the full history; empty when unavailable."""
        history = self.facade.history()
        if history is None:
            return DeploymentSummary()
        return classify(history, self._compiled)

    def build_info(self) -> InfoRecord:
        """Query git and assemble a new aggregate record."""
        history = self.facade.history()
        info = InfoRecord(
            snapshot=self.snapshot,
            short_hash=self.facade.short_hash(),
            branch=self.facade.branch(),
            head=history[0] if history else None,
            commit_count=self.facade.commit_count(),
            deployment=self.deployment_info(history),
            latest_tag=self.facade.latest_tag(),
        )
        logger.debug(
            f"Deploy info built: {info.short_hash} on {info.branch}, "
            f"{info.deployment.count} deploys, status {info.deployment.status.value}"
        )
        return info

    def refresh(self) -> InfoRecord:
        self._info = self.build_info()
        return self._info

    @property
    def info(self) -> InfoRecord:
        if self._info is None:
            return self.refresh()
        return self._info

    def deploy_commit_hashes(self, limit: Optional[int] = None) -> List[str]:
        """Hashes of deploy commits, most recent first, matched like ``deploy_count``."""
        history = self.facade.history()
        if history is None:
            return []
        return [commit.hash for commit in matching_commits(history, self._compiled, limit=limit)]

    def to_dict(self) -> Dict[str, Any]:
        return info_to_dict(self.info)

    def render(self) -> str:
        return render_report(self.info)

    def __str__(self) -> str:
        return self.render()

    # Snapshot values

    @property
    def version(self) -> str:
        return self.snapshot.version

    @property
    def deploy_time(self) -> datetime:
        return self.snapshot.loaded_at

    @property
    def build_label(self) -> str:
        return self.snapshot.build_label

    # Values read from the captured record

    @property
    def commit_hash(self) -> str:
        return self.info.short_hash

    @property
    def branch_name(self) -> str:
        return self.info.branch

    @property
    def commit_count(self) -> int:
        return self.info.commit_count

    @property
    def deploy_count(self) -> int:
        return self.info.deployment.count

    @property
    def deploy_status(self) -> DeployStatus:
        return self.info.deployment.status

    @property
    def last_successful_deploy(self) -> Optional[CommitRecord]:
        return self.info.deployment.last_qualifying

    @property
    def last_commit_hash(self) -> str:
        head = self.info.head
        return head.hash if head else "unknown"

    @property
    def last_commit_date(self) -> Optional[datetime]:
        head = self.info.head
        return head.timestamp if head else None

    @property
    def last_commit_message(self) -> str:
        return self.to_dict()["git"]["commit"]["message"]

    @property
    def author_name(self) -> str:
        return self.to_dict()["git"]["commit"]["author"]["name"]

    @property
    def author_email(self) -> str:
        return self.to_dict()["git"]["commit"]["author"]["email"]

    @property
    def committer_name(self) -> str:
        return self.to_dict()["git"]["commit"]["committer"]

    @property
    def latest_tag(self) -> str:
        return self.info.latest_tag


# API
router = APIRouter()


def get_deploy_info_service(request: Request) -> DeployInfoService:
    return request.app.state.deploy_info


@router.get("/health")
def health_check(service: DeployInfoService = Depends(get_deploy_info_service)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "deploy_info",
        "timestamp": datetime.now(timezone.utc),
        "repository": "available" if service.facade.is_available() else "unavailable",
    }


@router.get("/deploy-info", response_model=InfoRecord)
def get_deploy_info(service: DeployInfoService = Depends(get_deploy_info_service)):
    """Full aggregate record, queried fresh."""
    try:
        return service.build_info()
    except Exception as e:
        logger.error(f"Error building deploy info: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/deploy-info/summary")
def get_deploy_summary(service: DeployInfoService = Depends(get_deploy_info_service)):
    """Nested camelCase record."""
    try:
        return info_to_dict(service.build_info())
    except Exception as e:
        logger.error(f"Error building deploy summary: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/deploy-info/report", response_class=PlainTextResponse)
def get_deploy_report(service: DeployInfoService = Depends(get_deploy_info_service)):
    """Box-drawn text report."""
    try:
        return render_report(service.build_info())
    except Exception as e:
        logger.error(f"Error rendering deploy report: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/deploy-info/status")
def get_deploy_status(service: DeployInfoService = Depends(get_deploy_info_service)):
    """Deploy status with history availability."""
    try:
        deployment = service.deployment_info(service.facade.history())
    except Exception as e:
        logger.error(f"Error determining deploy status: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
    return {
        "status": deployment.status.value,
        "history_available": deployment.history_available,
        "count": deployment.count,
        "pattern": deployment.pattern,
    }


@router.get("/deploy-info/deploys")
def get_deploy_commits(
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Maximum number of hashes"),
    service: DeployInfoService = Depends(get_deploy_info_service),
):
    """Hashes of deploy commits, most recent first."""
    try:
        commits = service.deploy_commit_hashes(limit=limit)
    except Exception as e:
        logger.error(f"Error listing deploy commits: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
    return {"pattern": service.pattern, "commits": commits}


def create_app(service: Optional[DeployInfoService] = None) -> FastAPI:
    """Build the API; without ``service`` a context is created at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.deploy_info = service or DeployInfoService()
        logger.info(
            f"Deploy info service started (version {app.state.deploy_info.version}, "
            f"build {app.state.deploy_info.build_label})"
        )
        yield
        logger.info("Deploy info service stopped")

    app = FastAPI(
        title="Deploy Info Service",
        description="Read-only git deploy metadata",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


app = create_app()
