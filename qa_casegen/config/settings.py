# ==============================================
# Configuration management for QA Case Generator
# ==============================================

import os
from dataclasses import dataclass
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

from qa_casegen.utils.exceptions import InvalidConfigError, MissingConfigError

# Load .env file from project root directory
# This ensures .env is found regardless of where the script is run from
project_root = Path(__file__).parent.parent.parent
env_path = project_root / '.env'

load_dotenv(dotenv_path=env_path)


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass
class JiraConfig:
    """Jira integration configuration"""
    server: str
    email: str
    api_token: str
    sprint_field: str = "customfield_10020"

    def __post_init__(self):
        if self.server and not self.server.startswith('https://'):
            raise InvalidConfigError("JIRA_SERVER must start with https://")


@dataclass
class BrowserStackConfig:
    """BrowserStack Test Management configuration"""
    username: str
    access_key: str
    project_id: str
    api_url: str = "https://test-management.browserstack.com/api/v2"
    timeout: int = 10


@dataclass
class GeminiConfig:
    """Google Gemini AI configuration"""
    api_key: str
    model: str = "gemini-2.0-flash"
    temperature: float = 0.4
    max_tokens: int = 8192


@dataclass
class ResolverConfig:
    """Declarative classification rules and folder mappings"""
    rules_path: Path
    folders_path: Path
    base_dir: Path
    strict_folder_mapping: bool = True


@dataclass
class BatchConfig:
    """Batch processing configuration"""
    timeout_seconds: Optional[float] = None
    output_dir: Path = Path("output")
    test_case_max_retries: int = 3
    min_test_cases: int = 2
    max_test_cases: int = 5

    def __post_init__(self):
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise InvalidConfigError("BATCH_TIMEOUT_SECONDS must be positive")
        if not 0 < self.min_test_cases <= self.max_test_cases:
            raise InvalidConfigError("AI_MIN_TEST_CASES must be positive and not exceed AI_MAX_TEST_CASES")


@dataclass
class ServerConfig:
    """API server configuration"""
    host: str = "0.0.0.0"
    port: int = 3001
    debug: bool = False


class Config:
    """Main configuration class"""

    def __init__(self):
        self.jira = JiraConfig(
            server=os.getenv('JIRA_SERVER', ''),
            email=os.getenv('JIRA_EMAIL', ''),
            api_token=os.getenv('JIRA_API_TOKEN', ''),
            sprint_field=os.getenv('JIRA_SPRINT_FIELD', 'customfield_10020')
        )

        self.browserstack = BrowserStackConfig(
            username=os.getenv('BROWSERSTACK_USERNAME', ''),
            access_key=os.getenv('BROWSERSTACK_ACCESS_KEY', ''),
            project_id=os.getenv('BROWSERSTACK_PROJECT_ID', ''),
            api_url=os.getenv('BROWSERSTACK_API_URL', 'https://test-management.browserstack.com/api/v2'),
            timeout=int(os.getenv('BROWSERSTACK_TIMEOUT', '10'))
        )

        self.gemini = GeminiConfig(
            api_key=os.getenv('GEMINI_API_KEY', ''),
            model=os.getenv('GEMINI_MODEL', 'gemini-2.0-flash'),
            temperature=float(os.getenv('GEMINI_TEMPERATURE', '0.4')),
            max_tokens=int(os.getenv('GEMINI_MAX_TOKENS', '8192'))
        )

        # Relative paths resolve against the project root, like the rule files
        # they reference.
        self.resolvers = ResolverConfig(
            rules_path=project_root / os.getenv('RULES_CONFIG_PATH', 'config/rules.config.json'),
            folders_path=project_root / os.getenv('FOLDERS_CONFIG_PATH', 'config/folders.config.json'),
            base_dir=project_root,
            strict_folder_mapping=os.getenv('STRICT_FOLDER_MAPPING', 'true').lower() == 'true'
        )

        self.batch = BatchConfig(
            timeout_seconds=_optional_float(os.getenv('BATCH_TIMEOUT_SECONDS')),
            output_dir=project_root / os.getenv('OUTPUT_DIR', 'output'),
            test_case_max_retries=int(os.getenv('TEST_CASE_MAX_RETRIES', '3')),
            min_test_cases=int(os.getenv('AI_MIN_TEST_CASES', '2')),
            max_test_cases=int(os.getenv('AI_MAX_TEST_CASES', '5'))
        )

        self.server = ServerConfig(
            host=os.getenv('HOST', '0.0.0.0'),
            port=int(os.getenv('PORT', '3001')),
            debug=os.getenv('DEBUG', 'False').lower() == 'true'
        )

    def validate(self, require_jira: bool = True, require_gemini: bool = True) -> bool:
        """
        Validate credentials

        BrowserStack is always required. The manual prompt workflow runs
        without Gemini and the folder check needs BrowserStack only.
        """
        required_fields = {
            'BROWSERSTACK_USERNAME': self.browserstack.username,
            'BROWSERSTACK_ACCESS_KEY': self.browserstack.access_key,
            'BROWSERSTACK_PROJECT_ID': self.browserstack.project_id,
        }
        if require_jira:
            required_fields.update({
                'JIRA_SERVER': self.jira.server,
                'JIRA_EMAIL': self.jira.email,
                'JIRA_API_TOKEN': self.jira.api_token,
            })
        if require_gemini:
            required_fields['GEMINI_API_KEY'] = self.gemini.api_key

        missing = [field for field, value in required_fields.items() if not value]

        if missing:
            raise MissingConfigError(
                f"Missing required environment variables: {', '.join(missing)}. "
                f"Please check your .env file",
                context={'missing': missing}
            )

        return True

    def to_dict(self) -> dict:
        """Convert config to dictionary (for logging, debugging)"""
        return {
            'jira': {
                'server': self.jira.server,
                'email': self.jira.email,
            },
            'browserstack': {
                'project_id': self.browserstack.project_id,
                'api_url': self.browserstack.api_url,
            },
            'gemini': {
                'model': self.gemini.model,
                'temperature': self.gemini.temperature
            },
            'resolvers': {
                'rules_path': str(self.resolvers.rules_path),
                'folders_path': str(self.resolvers.folders_path),
                'strict_folder_mapping': self.resolvers.strict_folder_mapping
            },
            'batch': {
                'timeout_seconds': self.batch.timeout_seconds,
                'output_dir': str(self.batch.output_dir)
            },
            'server': {
                'host': self.server.host,
                'port': self.server.port,
                'debug': self.server.debug
            }
        }
