"""
User Intent and Setup Artifacts

Recognises the meta requests that are answered without running the agent
loop, and pulls setup identifiers (role ARN, SQS URLs, connector id) out
of agent turns for status reports.
"""

import json
import re
from enum import Enum
from typing import Iterable, List, Optional

from ..schemas.state import Phase, Session
from ..schemas.transcript import Turn
from ..schemas.decisions import SetupArtifacts


class Intent(str, Enum):
    HELP = "help"
    STATUS = "status"
    CONVERSE = "converse"


HELP_CUES = ["help", "how do i", "what can you do", "guide me"]
STATUS_CUES = ["status", "progress", "where are we", "what's done", "what is done"]

# Longer messages carry real content and go to the agents
META_MAX_WORDS = 6

ROLE_ARN_RE = re.compile(r"arn:aws:iam::\d{12}:role/[\w+=,.@/\-]+")
SQS_URL_RE = re.compile(r"https://sqs\.[a-z0-9\-]+\.amazonaws\.com/\d{12}/[\w\-]+")

HELP_TEXT = """I can set up the Microsoft Sentinel connector for AWS logs (S3, SQS, CloudTrail).

To get started, tell me:
1. Your Azure subscription ID and tenant ID
2. The resource group and Log Analytics workspace name
3. The AWS region and which log types to ingest

Ask for "status" at any time to see progress."""


def analyze_user_intent(text: str) -> Intent:
    """Classify a user message as a meta request or ordinary conversation"""
    folded = text.strip().casefold()
    if not folded or len(folded.split()) > META_MAX_WORDS:
        return Intent.CONVERSE
    if any(cue in folded for cue in HELP_CUES):
        return Intent.HELP
    if any(cue in folded for cue in STATUS_CUES):
        return Intent.STATUS
    return Intent.CONVERSE


def extract_value(content: str, key: str) -> Optional[str]:
    """
    Read a string value for key from JSON content or a `"key": "value"` fragment.
    """
    try:
        data = json.loads(content)
    except ValueError:
        data = None

    if isinstance(data, dict):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value

    match = re.search(rf'"{re.escape(key)}"\s*:\s*"([^"]+)"', content, re.IGNORECASE)
    return match.group(1) if match else None


def extract_setup_artifacts(turns: Iterable[Turn]) -> SetupArtifacts:
    """
    Collect setup identifiers reported by agents.

    Later turns override earlier ones for single-valued fields; SQS URLs
    accumulate without duplicates.
    """
    artifacts = SetupArtifacts()
    sqs_urls: List[str] = []

    for turn in turns:
        if turn.is_user:
            continue
        content = turn.content

        role_arn = extract_value(content, "roleArn")
        if not role_arn:
            match = ROLE_ARN_RE.search(content)
            role_arn = match.group(0) if match else None
        if role_arn:
            artifacts.role_arn = role_arn

        queue_url = extract_value(content, "queueUrl")
        for url in ([queue_url] if queue_url else []) + SQS_URL_RE.findall(content):
            if url not in sqs_urls:
                sqs_urls.append(url)

        connector = extract_value(content, "connectorName")
        if connector:
            artifacts.connector_id = connector

    artifacts.sqs_urls = sqs_urls
    return artifacts


def build_status_report(session: Session, phase: Phase) -> str:
    """Human-readable progress summary for a session"""
    errors = session.error_state
    artifacts = extract_setup_artifacts(session.transcript)

    lines = [
        f"Session {session.session_id}",
        f"Phase: {phase.value}",
        f"Agent turns: {session.iteration_count}/{session.max_iterations}",
        f"Errors detected: {errors.total_errors}",
        f"Error recovery: {'active' if errors.in_error_recovery else 'inactive'}",
    ]
    if session.terminal:
        lines.append(f"Finished: {session.termination_reason}")
    if artifacts.role_arn:
        lines.append(f"AWS role ARN: {artifacts.role_arn}")
    for url in artifacts.sqs_urls:
        lines.append(f"SQS queue: {url}")
    if artifacts.connector_id:
        lines.append(f"Sentinel connector: {artifacts.connector_id}")

    return "\n".join(lines)
