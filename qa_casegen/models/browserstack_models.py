# ==============================================
# BrowserStack Test Management data models
# ==============================================

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class BrowserStackFolder:
    """Test case folder"""
    id: int
    name: str
    parent_id: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'BrowserStackFolder':
        return cls(id=data['id'], name=data.get('name', ''), parent_id=data.get('parent_id'))


@dataclass
class CreatedTestCase:
    """Test case created in a folder"""
    identifier: str
    title: str
    folder_id: int


@dataclass
class TestRun:
    """Test run (named after the ticket id)"""
    __test__ = False

    identifier: str
    name: str
    test_plan_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'TestRun':
        return cls(
            identifier=str(data.get('identifier') or data.get('id', '')),
            name=data.get('name', ''),
            test_plan_id=data.get('test_plan_id'),
        )


@dataclass
class TestPlan:
    """Test plan (named after a sprint)"""
    __test__ = False

    identifier: str
    name: str
