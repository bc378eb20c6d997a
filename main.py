import time
from dataclasses import dataclass
from datetime import timedelta

from core.config import Settings, get_settings
from core.logger import get_logger, setup_logging
from db import (
    ActionLogStore,
    AutomationRepository,
    ExecutionStore,
    SqlAlchemyActionLogStore,
    SqlAlchemyAutomationRepository,
    SqlAlchemyExecutionStore,
    create_db_engine,
    create_session_factory,
    init_db,
)
from engine import (
    AutomationEngine,
    ConditionNodeHandler,
    DelayNodeHandler,
    EmailNodeHandler,
    EndNodeHandler,
    EventMatcher,
    WorkflowExecutor,
    WorkflowScheduler,
)
from events import EventBus
from llm import LlmAutomationParser, OpenAIAutomationLLM
from models import Automation
from registry import create_default_registries
from services import EmailDeliveryService, InMemoryEmailDeliveryService, InMemorySubscriberDirectory, SubscriberDirectory
from validations import parse_and_validate_automation

logger = get_logger("main")


@dataclass
class Application:
    settings: Settings
    event_bus: EventBus
    repository: AutomationRepository
    executions: ExecutionStore
    action_logs: ActionLogStore
    scheduler: WorkflowScheduler
    engine: AutomationEngine


def build_application(
    settings: Settings | None = None,
    *,
    repository: AutomationRepository | None = None,
    executions: ExecutionStore | None = None,
    action_logs: ActionLogStore | None = None,
    email_service: EmailDeliveryService | None = None,
    directory: SubscriberDirectory | None = None,
    event_bus: EventBus | None = None,
) -> Application:
    """
    Construct every service once and wire them together.

    Stores default to SQLAlchemy on ``settings.database_url``. The email and
    subscriber collaborators default to in-memory stand-ins and should be
    replaced by the host application.
    """
    settings = settings or get_settings()

    if repository is None or executions is None or action_logs is None:
        db_engine = create_db_engine(settings.database_url)
        init_db(db_engine)
        session_factory = create_session_factory(db_engine)
        repository = repository or SqlAlchemyAutomationRepository(session_factory)
        executions = executions or SqlAlchemyExecutionStore(session_factory)
        action_logs = action_logs or SqlAlchemyActionLogStore(session_factory)

    email_service = email_service or InMemoryEmailDeliveryService()
    directory = directory or InMemorySubscriberDirectory()
    event_bus = event_bus or EventBus()

    scheduler = WorkflowScheduler(
        executions,
        batch_size=settings.scheduler_batch_size,
        interval_seconds=settings.scheduler_interval_seconds,
        default_delay=timedelta(minutes=settings.default_delay_minutes),
        timezone=settings.timezone,
    )
    executor = WorkflowExecutor(
        [
            EmailNodeHandler(email_service, directory, action_logs, settings.api_base_url),
            DelayNodeHandler(scheduler),
            ConditionNodeHandler(email_service),
            EndNodeHandler(),
        ]
    )
    engine = AutomationEngine(repository, EventMatcher(repository), executor, event_bus)
    scheduler.set_resume_handler(engine.resume_automation)

    return Application(
        settings=settings,
        event_bus=event_bus,
        repository=repository,
        executions=executions,
        action_logs=action_logs,
        scheduler=scheduler,
        engine=engine,
    )


def orchestrate_user_input(payload_text: str, user_id: str, repository: AutomationRepository) -> str:
    """
    Ingest a stringified automation JSON (from the editor or an LLM):
    1. Parse stringified JSON.
    2. Validate against the Automation schema, registries and graph rules.
    3. Save to persistence layer.

    Returns the saved automation id.
    """
    registries = create_default_registries()
    parsed_payload = LlmAutomationParser().parse(payload_text)
    parsed_payload["userId"] = user_id
    automation: Automation = parse_and_validate_automation(parsed_payload, registries)
    return repository.save(automation)


def orchestrate_natural_language(
    user_input: str,
    user_id: str,
    repository: AutomationRepository,
    llm_client: OpenAIAutomationLLM | None = None,
) -> str:
    """
    Full pipeline starting from natural language:
    1. Send NL to OpenAI with registry context to get stringified JSON.
    2. Parse, validate and save it as in ``orchestrate_user_input``.
    """
    registries = create_default_registries()
    llm_client = llm_client or OpenAIAutomationLLM(model=get_settings().openai_model)
    llm_text = llm_client.generate_automation_json(user_input, registries)
    return orchestrate_user_input(llm_text, user_id, repository)


def run_forever(app: Application) -> None:
    app.engine.initialize()
    app.scheduler.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        app.scheduler.shutdown()


if __name__ == "__main__":
    import sys

    settings = get_settings()
    setup_logging(settings.logging)
    app = build_application(settings)

    if len(sys.argv) > 2:
        # main.py <user_id> <natural language request>
        user_id = sys.argv[1]
        user_input = " ".join(sys.argv[2:])
        automation_id = orchestrate_natural_language(user_input, user_id, app.repository)
        print(f"Automation saved with id: {automation_id}")
    else:
        run_forever(app)
