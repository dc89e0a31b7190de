"""
Presentation of deploy info: box-drawn text report and nested record.
"""

from typing import Any, Dict, Optional

from shared.models import CommitRecord, InfoRecord
from services.deploy_info.repository import NO_MESSAGE, UNKNOWN


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _commit_ref(commit: Optional[CommitRecord]) -> Optional[Dict[str, Any]]:
    if commit is None:
        return None
    return {
        "hash": commit.hash,
        "message": commit.subject,
        "date": _isoformat(commit.timestamp),
    }


def info_to_dict(info: InfoRecord) -> Dict[str, Any]:
    """Nested, JSON-ready record in the camelCase layout consumers expect."""
    head = info.head
    deployment = info.deployment
    return {
        "version": info.snapshot.version,
        "deployTime": _isoformat(info.snapshot.loaded_at),
        "buildLabel": info.snapshot.build_label,
        "deployCount": deployment.count,
        "commitCount": info.commit_count,
        "deployment": {
            "status": deployment.status.value,
            "historyAvailable": deployment.history_available,
            "pattern": deployment.pattern,
            "lastSuccess": _commit_ref(deployment.last_qualifying),
        },
        "git": {
            "commit": {
                "hash": info.short_hash,
                "branch": info.branch,
                "message": head.subject if head else NO_MESSAGE,
                "date": _isoformat(head.timestamp) if head else None,
                "author": {
                    "name": head.author_name if head else UNKNOWN,
                    "email": head.author_email if head else UNKNOWN,
                },
                "committer": head.committer_name if head else UNKNOWN,
            },
            "latestTag": info.latest_tag,
        },
    }


def render_report(info: InfoRecord) -> str:
    """Multi-line box-drawn report."""
    record = info_to_dict(info)
    commit = record["git"]["commit"]
    deployment = record["deployment"]
    last_success = deployment["lastSuccess"]
    if last_success:
        last_success_line = f"{last_success['hash'][:7]} ({last_success['date']})"
    else:
        last_success_line = "none"

    lines = [
        "╔════════════════════ DEPLOY INFO ══════════════════════╗",
        f"║ Version      : {record['version']}",
        f"║ Build        : {record['buildLabel']}",
        f"║ Deploy Time  : {record['deployTime']}",
        f"║ Deploy Count : {record['deployCount']}",
        f"║ Status       : {deployment['status']}",
        f"║ Last Success : {last_success_line}",
        "╠═════════════════════ LAST COMMIT ═════════════════════╣",
        f"║ Hash       : {commit['hash']}",
        f"║ Branch     : {commit['branch']}",
        f"║ Author     : {commit['author']['name']} <{commit['author']['email']}>",
        f"║ Date       : {commit['date']}",
        f"║ Message    : {commit['message']}",
        "╠═══════════════════════════════════════════════════════╣",
        f"║ Latest Tag : {record['git']['latestTag']}",
        "╚═══════════════════════════════════════════════════════╝",
    ]
    return "\n".join(lines)
