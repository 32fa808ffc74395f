from functools import lru_cache
from typing import Callable

from qa_casegen.clients.browserstack_client import BrowserStackClient
from qa_casegen.config.settings import Config
from qa_casegen.resolvers.folder_mapper import FolderMapper
from qa_casegen.resolvers.rule_resolver import RuleResolver
from qa_casegen.services.batch_orchestrator import Processor
from qa_casegen.services.prompt_workflow import PromptWorkflow
from qa_casegen.services.ticket_processor import TicketProcessor


@lru_cache(maxsize=1)
def get_config() -> Config:
    return Config()


@lru_cache(maxsize=1)
def get_rule_resolver() -> RuleResolver:
    config = get_config()
    return RuleResolver.from_file(config.resolvers.rules_path, base_dir=config.resolvers.base_dir)


@lru_cache(maxsize=1)
def get_folder_mapper() -> FolderMapper:
    config = get_config()
    mapper = FolderMapper.from_file(
        config.resolvers.folders_path,
        strict=config.resolvers.strict_folder_mapping,
    )
    resolver = get_rule_resolver()
    mapper.ensure_covers(resolver.get_domains(), resolver.get_default_domain())
    return mapper


@lru_cache(maxsize=1)
def get_browserstack_client() -> BrowserStackClient:
    config = get_config()
    config.validate(require_jira=False, require_gemini=False)
    return BrowserStackClient(config)


@lru_cache(maxsize=1)
def get_prompt_workflow() -> PromptWorkflow:
    return PromptWorkflow.from_config(
        get_config(), get_rule_resolver(), get_folder_mapper(), browserstack_client=get_browserstack_client()
    )


@lru_cache(maxsize=1)
def get_ticket_processor() -> TicketProcessor:
    return TicketProcessor.from_config(get_config(), get_prompt_workflow())


def get_processor_provider() -> Callable[[], Processor]:
    """Processor is built lazily so lookup routes work without credentials"""
    return get_ticket_processor
