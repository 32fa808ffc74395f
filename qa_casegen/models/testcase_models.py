# ==============================================
# Generated QA test case models
# ==============================================

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class QaTestStep(BaseModel):
    """One step of a test case and its expected result"""
    step: str = Field(..., description="Action to perform")
    result: str = Field(..., description="Expected result")


class QaTestCase(BaseModel):
    """Test case as produced by the AI response and sent to BrowserStack"""
    name: str = Field(..., min_length=1)
    description: str
    preconditions: Optional[str] = None
    test_case_steps: List[QaTestStep]
    tags: Optional[List[str]] = None

    def to_payload(self) -> Dict[str, Any]:
        """BrowserStack test case body (unset optional fields omitted)"""
        return self.model_dump(exclude_none=True)
