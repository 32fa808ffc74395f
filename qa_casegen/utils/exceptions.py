# ==============================================
# Custom exceptions for QA Case Generator
# ==============================================

"""
Exception Hierarchy for QA Case Generator

1. All exceptions inherit from CaseGenException
2. Exceptions are categorized by domain (Request, Configuration, Classification,
   Task, Client)
3. Each exception carries an error code from ErrorCode and optional context
4. Only configuration and request errors propagate out of a batch; per-task
   failures are contained by the orchestrator
"""

from typing import Optional, Dict, Any


# ==============================================
# Error Codes
# ==============================================

class ErrorCode:
    """Machine-readable error codes shared by API responses and log records"""

    # Task/Jira errors
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    TASK_INVALID_FORMAT = "TASK_INVALID_FORMAT"

    # Authentication errors
    AUTH_FAILED = "AUTH_FAILED"

    # Rate limit errors
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # File/Resource errors
    RULE_FILE_NOT_FOUND = "RULE_FILE_NOT_FOUND"

    # BrowserStack errors
    BROWSERSTACK_API_ERROR = "BROWSERSTACK_API_ERROR"
    TEST_CASE_CREATION_FAILED = "TEST_CASE_CREATION_FAILED"

    # Validation errors
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_JSON = "INVALID_JSON"
    INVALID_RESPONSE = "INVALID_RESPONSE"

    # Configuration errors
    CONFIG_ERROR = "CONFIG_ERROR"

    # AI errors
    AI_API_ERROR = "AI_API_ERROR"

    # Server errors
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

    _STATUS_CODES = {
        TASK_NOT_FOUND: 404,
        RULE_FILE_NOT_FOUND: 404,
        AUTH_FAILED: 401,
        RATE_LIMIT_EXCEEDED: 429,
        INVALID_REQUEST: 400,
        INVALID_JSON: 400,
        TASK_INVALID_FORMAT: 400,
        BROWSERSTACK_API_ERROR: 502,
        AI_API_ERROR: 502,
        INVALID_RESPONSE: 502,
    }

    _DESCRIPTIONS = {
        TASK_NOT_FOUND: "Task not found in Jira. Please check the task ID.",
        TASK_INVALID_FORMAT: "Invalid task ID format. Expected format: PA-12345",
        AUTH_FAILED: "Authentication failed. Please check credentials.",
        RATE_LIMIT_EXCEEDED: "Rate limit exceeded. Please try again later.",
        RULE_FILE_NOT_FOUND: "Rule file not found. Please contact support.",
        BROWSERSTACK_API_ERROR: "BrowserStack API error. Please try again.",
        TEST_CASE_CREATION_FAILED: "Failed to create test cases in BrowserStack.",
        INVALID_REQUEST: "Invalid request. Please check your input.",
        INVALID_JSON: "Invalid JSON format. Please check your response.",
        INVALID_RESPONSE: "Invalid response format from the AI provider.",
        CONFIG_ERROR: "Server configuration error. Please contact support.",
        AI_API_ERROR: "AI provider error. Please try again.",
        INTERNAL_SERVER_ERROR: "Server error occurred. Please try again or contact support.",
    }

    @classmethod
    def status_code(cls, error_code: Optional[str]) -> int:
        """HTTP status for an error code (500 when unknown)"""
        return cls._STATUS_CODES.get(error_code, 500)

    @classmethod
    def get_description(cls, error_code: Optional[str]) -> str:
        """Human-readable description for an error code"""
        return cls._DESCRIPTIONS.get(error_code, "An unexpected error occurred.")


# ==============================================
# Base Exception
# ==============================================

class CaseGenException(Exception):
    """
    Base exception for all QA Case Generator errors

    All custom exceptions should inherit from this class.
    """

    default_error_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        """
        Initialize base exception

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code (see ErrorCode)
            context: Additional context information (task id, domain, etc.)
            original_exception: Original exception if this is a wrapped error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.context = context or {}
        self.original_exception = original_exception

    def __str__(self):
        """Format exception as string with context"""
        base = self.message
        if self.error_code:
            base = f"[{self.error_code}] {base}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} (Context: {context_str})"
        return base


# ==============================================
# Request Exceptions
# ==============================================

class InvalidRequestError(CaseGenException):
    """Malformed or empty batch submission"""
    default_error_code = ErrorCode.INVALID_REQUEST


# ==============================================
# Configuration Exceptions
# ==============================================

class ConfigurationError(CaseGenException):
    """Deployment/configuration defect (rules, folder mappings, credentials)"""
    default_error_code = ErrorCode.CONFIG_ERROR


class MissingConfigError(ConfigurationError):
    """Required configuration is missing"""
    pass


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid"""
    pass


class UnmappedDomainError(ConfigurationError):
    """Analytics domain has no folder mapping"""
    pass


# ==============================================
# Classification Exceptions
# ==============================================

class ClassificationError(CaseGenException):
    """Ticket title could not be classified"""
    default_error_code = ErrorCode.INVALID_REQUEST


class EmptyTitleError(ClassificationError):
    """Ticket title is empty or whitespace only"""
    pass


# ==============================================
# Task Exceptions
# ==============================================

class TaskProcessingError(CaseGenException):
    """Failure of the per-ticket processor for a single task"""
    default_error_code = ErrorCode.INTERNAL_SERVER_ERROR


class TestCaseImportException(TaskProcessingError):
    """AI response could not be turned into valid test cases"""
    __test__ = False
    default_error_code = ErrorCode.INVALID_RESPONSE


# ==============================================
# Client Exceptions
# ==============================================

class ClientException(CaseGenException):
    """Base exception for collaborator client errors (Jira, BrowserStack, Gemini)"""
    pass


class JiraClientException(ClientException):
    """Jira client errors"""
    pass


class JiraAuthenticationException(JiraClientException):
    """Jira authentication failed"""
    default_error_code = ErrorCode.AUTH_FAILED


class JiraTicketNotFoundException(JiraClientException):
    """Jira ticket not found"""
    default_error_code = ErrorCode.TASK_NOT_FOUND


class BrowserStackClientException(ClientException):
    """BrowserStack Test Management client errors"""
    default_error_code = ErrorCode.BROWSERSTACK_API_ERROR


class GeminiClientException(ClientException):
    """Gemini AI client errors"""
    default_error_code = ErrorCode.AI_API_ERROR


# ==============================================
# Exception Utilities
# ==============================================

def describe_exception(exception: Exception) -> str:
    """
    Human-readable message for an exception, without code or context decoration

    Used for the message carried by a failed step event.
    """
    if isinstance(exception, CaseGenException):
        return exception.message
    return str(exception) or type(exception).__name__
