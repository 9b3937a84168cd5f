"""
Shared fixtures: a fixed clock, an in-memory profile store, a tool executor
over it, and a sample assessment payload.
"""

import copy
from datetime import datetime, timezone

import pytest

from clients import ProfileStore
from tools import ToolExecutor, get_tool_registry

FIXED_NOW = datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc)

# Dimension means: programming 75, algorithm 55, project 70,
# system_design 40, communication 90 -> overall 66
SAMPLE_ASSESSMENT = {
    "overall_score": 0,
    "dimensions": {
        "programming": {
            "score": 0,
            "weight": 0.30,
            "skills": {
                "syntax": {"score": 80, "confidence": 0.9, "is_inferred": False},
                "data_structures": {"score": 70, "confidence": 0.8, "is_inferred": False},
            },
        },
        "algorithm": {
            "score": 0,
            "weight": 0.20,
            "skills": {
                "recursion": {"score": 50, "confidence": 0.8, "is_inferred": False},
                "sorting": 60,
            },
        },
        "project": {
            "score": 0,
            "weight": 0.25,
            "skills": {"implementation": {"score": 70, "confidence": 0.9, "is_inferred": False}},
        },
        "system_design": {
            "score": 0,
            "weight": 0.15,
            "skills": {"scalability": {"score": 40, "confidence": 0.4, "is_inferred": True}},
        },
        "communication": {
            "score": 0,
            "weight": 0.10,
            "skills": {"code_review": {"score": 90, "confidence": 0.9, "is_inferred": False}},
        },
    },
    "metadata": {
        "assessment_date": "2026-10-01T08:00:00+00:00",
        "assessment_method": "resume",
        "confidence": 0.8,
    },
    "report": {
        "summary": "基础扎实",
        "strengths": ["扎实的编程基础"],
        "improvements": ["系统设计经验不足"],
        "recommendations": ["多做架构练习"],
    },
}


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def clock():
    """Clock that returns FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def store():
    """Fresh in-memory profile store."""
    return ProfileStore()


@pytest.fixture
def executor(store):
    """Tool executor bound to the store fixture."""
    return ToolExecutor(get_tool_registry(store), store=store)


@pytest.fixture
def assessment_payload():
    """Raw assessment payload as the LLM would return it."""
    return copy.deepcopy(SAMPLE_ASSESSMENT)


def make_path(goal_id, completed=0, in_progress=0, not_started=0, status="active", path_id=None):
    """Build a path dict with the given node status counts."""
    statuses = ["completed"] * completed + ["in_progress"] * in_progress + ["not_started"] * not_started
    path = {
        "goal_id": goal_id,
        "title": "Python 学习路径",
        "status": status,
        "nodes": [
            {"id": f"node_{index}", "title": f"节点 {index}", "status": node_status, "estimated_hours": 5}
            for index, node_status in enumerate(statuses, start=1)
        ],
    }
    if path_id:
        path["id"] = path_id
    return path
