"""
This module is the entry point of the LLM-based business report generator.

It defines the `ReportGenerator` class, which turns a user's `ReportConfig`
into a typed `ReportData` by asking Google Gemini, grounded with Google Search,
for a JSON document that follows a strict response schema.

The key responsibilities of this module are:

1.  **Configuration Loading**: Loads and validates settings from a dedicated
    YAML file using Pydantic models.
2.  **LLM Orchestration**: Builds the instruction and response schema for the
    requested report profile and invokes Gemini through LangChain with search
    grounding and JSON output enabled.
3.  **Normalization & Errors**: Validates the answer, merges the grounding
    citations into the report's sources, and classifies failures into
    credential-missing, malformed-response, and generation-failed errors.
4.  **Report Export & Serving**: Saves the report as JSON and styled HTML, and
    serves it (with an API for new reports) via a local FastAPI web server.

Execution:
    To generate a report from a request file and serve it:
    $ python -m src.report_generator.main --request config/example_request.yaml

    To serve the latest saved report without generating a new one:
    $ python -m src.report_generator.main --serve-only
"""

# =============================================================================
# HEADER (Imports, Constants, Logger)
# =============================================================================
import argparse
import asyncio
import logging
import os
import webbrowser
from typing import Any, Callable, Dict, List, Optional

import uvicorn
import yaml
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, JSONResponse, Response
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.runnables import Runnable, RunnableLambda
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import BaseModel, Field, ValidationError
from starlette.staticfiles import StaticFiles

from .. import constants
from .errors import (
    CredentialMissingError,
    ReportGenerationError,
    classify_provider_error,
)
from .models import ReportConfig, ReportData, ReportProfile
from .normalizer import extract_grounding_chunks, normalize_response
from .prompts import DEFAULT_PROMPT_TEMPLATE, DEFAULT_SYSTEM_TEMPLATE
from .request_builder import ReportRequest, build_request
from .utils.credentials import CredentialProvider, EnvironmentCredentialProvider
from .utils.localization import get_label
from .utils.rendering import (
    find_latest_run_dir,
    load_run_metadata,
    load_saved_report,
    render_report_html,
    save_report,
)
from .utils.table import ASCENDING, DESCENDING, SortState
from .utils.theme import FileThemeStore, Theme, ThemePreference

# --- Logger ---
logger = logging.getLogger(__name__)
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
# Silence noisy third-party loggers to keep the output clean.
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("google_genai").setLevel(logging.WARNING)
logging.getLogger("google.api_core").setLevel(logging.ERROR)


# --- Application Configuration ---
DEFAULT_REPORT_CONFIG_PATH = os.path.join(
    constants.CONFIG_DIR, constants.REPORT_GEN_CONFIG_FILENAME
)
THEME_PREFERENCE_PATH = os.path.join(
    constants.OUTPUT_DIR, constants.THEME_PREFERENCE_FILENAME
)


# --- Default LLM Configuration (used if not in config file) ---
GEMINI_DEFAULT_MODEL_NAME = "gemini-3-pro-preview"

LLMFactory = Callable[[ReportRequest], Runnable]


# =============================================================================
# CONFIGURATION MODELS (Pydantic)
# =============================================================================
class GeminiSettings(BaseModel):
    """Settings specific to the Google Gemini provider."""

    model_name: str = GEMINI_DEFAULT_MODEL_NAME
    temperature: Optional[float] = None


class LLMConfig(BaseModel):
    """Configuration for the LLM provider and its grounding behaviour."""

    gemini_settings: GeminiSettings = Field(default_factory=GeminiSettings)
    enable_search_grounding: bool = Field(
        default=True, description="Bind the Google Search tool to every request."
    )


class PromptConfig(BaseModel):
    """Templates used to build the instruction sent to the LLM."""

    llm_prompt_template: str = Field(
        default=DEFAULT_PROMPT_TEMPLATE,
        description="The main prompt template for the LLM.",
    )
    system_prompt_template: str = Field(
        default=DEFAULT_SYSTEM_TEMPLATE,
        description="The system instruction template for the LLM.",
    )


class VisualsConfig(BaseModel):
    """Configuration for the visual appearance of the HTML report."""

    report_width_px: int = Field(
        default=1100, description="The maximum width of the report content in pixels."
    )
    default_theme: Theme = Field(
        default=Theme.LIGHT, description="Theme used when no preference is stored."
    )


class ReportingConfig(BaseModel):
    """Groups all settings related to the final report's appearance."""

    visuals: VisualsConfig = Field(default_factory=VisualsConfig)
    default_language: str = Field(
        default="English",
        description="Display language for reports whose request language is unknown.",
    )


class OutputConfig(BaseModel):
    """Where generated reports are saved."""

    base_output_dir: str = constants.OUTPUT_DIR
    save_reports: bool = True


class ReportGeneratorConfig(BaseModel):
    """The main configuration model that aggregates all other settings."""

    reporting: ReportingConfig = Field(default_factory=ReportingConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    prompts: PromptConfig = Field(default_factory=PromptConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================
def load_report_config(
    config_path: str = DEFAULT_REPORT_CONFIG_PATH,
) -> ReportGeneratorConfig:
    """
    Loads and validates the report generator configuration from a YAML file.

    This function reads the specified YAML file, parses it, and validates its
    structure and types against the `ReportGeneratorConfig` Pydantic model.

    Args:
        config_path: The path to the YAML configuration file.

    Returns:
        A validated ReportGeneratorConfig object.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the config file is empty.
        yaml.YAMLError: If the file is not valid YAML.
        ValidationError: If the file content does not match the Pydantic model.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
            if not config_data:
                raise ValueError("Configuration file is empty.")
        return ReportGeneratorConfig(**config_data)
    except FileNotFoundError:
        logger.error(f"Report configuration file not found at {config_path}.")
        raise
    except yaml.YAMLError as e:
        logger.error(
            f"Error parsing report configuration YAML file '{config_path}': {e}"
        )
        raise
    except ValidationError as e:
        logger.error(f"Error validating configuration from '{config_path}':\n{e}")
        raise


def load_report_request(request_path: str) -> ReportConfig:
    """
    Loads a report request (the user's `ReportConfig`) from a YAML file.

    Raises:
        FileNotFoundError: If the request file does not exist.
        ValueError: If the request file is empty.
        ValidationError: If the file content is not a valid report request.
    """
    try:
        with open(request_path, "r", encoding="utf-8") as f:
            request_data = yaml.safe_load(f)
            if not request_data:
                raise ValueError("Report request file is empty.")
        return ReportConfig.model_validate(request_data)
    except FileNotFoundError:
        logger.error(f"Report request file not found at {request_path}.")
        raise
    except ValidationError as e:
        logger.error(f"Invalid report request in '{request_path}':\n{e}")
        raise


def _message_text(message: BaseMessage) -> str:
    """Joins the text parts of a chat message; Gemini may return content blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


# =============================================================================
# MAIN REPORT GENERATION CLASS
# =============================================================================
class ReportGenerator:
    """
    Generates a structured, search-grounded business report with an LLM.

    The generator is stateless between calls: each `generate_report` builds a
    fresh request, creates a fresh LLM client (so the latest API key in the
    environment is used), and returns a fresh `ReportData`.

    Attributes:
        config (ReportGeneratorConfig): The validated configuration object.
        llm_factory (LLMFactory): Creates the LLM runnable for a request.
    """

    def __init__(
        self, config: ReportGeneratorConfig, llm_factory: Optional[LLMFactory] = None
    ):
        """
        Initializes the ReportGenerator.

        Args:
            config: The validated configuration object.
            llm_factory: Optional replacement for the Gemini client factory,
                called with the `ReportRequest` of each generation.
        """
        self.config = config
        self.llm_factory = llm_factory or self._get_llm_instance

    def _get_llm_instance(self, request: ReportRequest) -> Runnable:
        """
        Initializes the Gemini chat model for one request via LangChain.

        The model is constrained to JSON output following the request's
        response schema, and Google Search grounding is bound as a tool.

        Raises:
            CredentialMissingError: If no API key is set in the environment.
        """
        api_key = os.environ.get(constants.API_KEY_ENV_VAR)
        if not api_key:
            raise CredentialMissingError(
                f"{constants.API_KEY_ENV_VAR} environment variable not set for Gemini."
            )
        settings = self.config.llm.gemini_settings
        logger.info(f"Initializing LangChain Gemini model: {settings.model_name}")
        init_kwargs: Dict[str, Any] = {
            "model": settings.model_name,
            "google_api_key": api_key,
            "response_mime_type": "application/json",
            "response_schema": request.response_schema,
        }
        if settings.temperature is not None:
            init_kwargs["temperature"] = settings.temperature
        llm = ChatGoogleGenerativeAI(**init_kwargs)

        if self.config.llm.enable_search_grounding:
            return llm.bind_tools([{"google_search": {}}])
        return llm

    def _create_report_generation_chain(self, llm: Runnable) -> Runnable:
        """
        Creates the LangChain Runnable chain for generating the report.

        The chain turns a `ReportRequest` into system and human messages and
        pipes them to the LLM.
        """

        def _prepare_llm_input(request: ReportRequest) -> List[BaseMessage]:
            return [
                SystemMessage(content=request.system_instruction),
                HumanMessage(content=request.instruction),
            ]

        return RunnableLambda(_prepare_llm_input) | llm

    def build_request(
        self, report_config: ReportConfig, profile: ReportProfile
    ) -> ReportRequest:
        """Builds the request with the configured prompt templates."""
        return build_request(
            report_config,
            profile,
            prompt_template=self.config.prompts.llm_prompt_template,
            system_template=self.config.prompts.system_prompt_template,
        )

    def _log_token_usage(self, message: BaseMessage) -> None:
        usage_data = getattr(message, "usage_metadata", None)
        if not usage_data:
            return
        logger.info("--- Gemini Token Usage ---")
        logger.info(f"  Input:  {usage_data.get('input_tokens', 0)} tokens")
        logger.info(f"  Output: {usage_data.get('output_tokens', 0)} tokens")
        logger.info(f"  Total:  {usage_data.get('total_tokens', 0)} tokens")
        logger.info("-----------------------")

    async def generate_report(
        self,
        report_config: ReportConfig,
        profile: ReportProfile = ReportProfile.GENERIC,
    ) -> ReportData:
        """
        Generates one report for the given configuration.

        This method executes the full generation pipeline:
        1.  Builds the instruction and response schema for `profile`.
        2.  Invokes the LLM with search grounding and JSON output.
        3.  Validates the answer and appends the grounding citations.

        Args:
            report_config: The user's report configuration.
            profile: Which schema variant the report must follow.

        Returns:
            The validated `ReportData`.

        Raises:
            CredentialMissingError: If the provider rejects the API key.
            MalformedResponseError: If the answer is not a valid report.
            GenerationFailedError: For any other provider or network failure.
        """
        logger.info(
            f"--- Generating '{ReportProfile(profile).value}' report: {report_config.topic} ---"
        )
        request = self.build_request(report_config, profile)

        try:
            llm = self.llm_factory(request)
            report_chain = self._create_report_generation_chain(llm)
            response_message = await report_chain.ainvoke(request)
        except Exception as e:
            error = classify_provider_error(e, report_config.language)
            logger.error(f"Gemini API error ({error.kind.value}): {e}")
            if error is e:
                raise
            raise error from e

        if not isinstance(response_message, BaseMessage):
            response_message = AIMessage(content=str(response_message))
        self._log_token_usage(response_message)

        report_text = _message_text(response_message)
        chunks = extract_grounding_chunks(
            getattr(response_message, "response_metadata", None)
        )
        report = normalize_response(
            report_text, chunks, request.profile, report_config.language
        )
        logger.info(
            f"Report '{report.title}' generated with {len(report.charts)} chart(s), "
            f"{len(report.table_data)} table row(s), {len(report.sources)} source(s)."
        )
        return report


async def run_generation(
    generator: ReportGenerator,
    credentials: CredentialProvider,
    report_config: ReportConfig,
    profile: ReportProfile = ReportProfile.GENERIC,
) -> Optional[ReportData]:
    """
    Runs one generation the way an interactive caller should.

    The credential is checked (and selection prompted) before the request.
    When the provider still reports a missing credential, selection is
    prompted again but the request is not retried.

    Returns:
        The report, or None if generation failed (the failure is logged).
    """
    if not credentials.has_usable_credential():
        await credentials.prompt_credential_selection()

    try:
        return await generator.generate_report(report_config, profile)
    except CredentialMissingError as e:
        logger.error(f"{e.message} Select a key and run the generation again.")
        await credentials.prompt_credential_selection()
    except ReportGenerationError as e:
        logger.error(f"Report generation failed ({e.kind.value}): {e.message}")
    return None


def restore_latest_report(state: Dict, base_output_dir: str) -> Optional[str]:
    """
    Loads the most recent saved run into the server state, with its language.

    Returns:
        The run directory that was loaded, or None if there is none.
    """
    latest_dir = find_latest_run_dir(base_output_dir)
    if latest_dir:
        state["latest_report"] = load_saved_report(latest_dir)
        state["latest_language"] = load_run_metadata(latest_dir).get("language")
    return latest_dir


# =============================================================================
# WEB SERVER LOGIC (FastAPI)
# =============================================================================
class GenerateReportBody(BaseModel):
    """Request body of `POST /api/reports`."""

    config: ReportConfig
    profile: ReportProfile = ReportProfile.GENERIC


def create_fastapi_app(state: Dict) -> FastAPI:
    """
    Creates and configures the FastAPI application, injecting state.

    This factory pattern avoids using global variables for state management,
    making the server more robust and testable.

    Args:
        state: A dictionary holding application state. Expected keys are
            `generator`, `credentials`, `theme_preference`, and optionally
            `latest_report` and `latest_language`.

    Returns:
        A configured FastAPI application instance.
    """
    app = FastAPI()
    generator: ReportGenerator = state["generator"]
    reporting = generator.config.reporting
    output_dir = generator.config.output.base_output_dir
    generation_lock = asyncio.Lock()

    # Mount the output directory so saved reports can be opened directly.
    if os.path.isdir(output_dir):
        app.mount(
            f"/{constants.OUTPUT_DIR}",
            StaticFiles(directory=output_dir),
            name=constants.OUTPUT_DIR,
        )

    def _render_latest(
        sort: Optional[str],
        direction: str,
        theme: Optional[Theme],
        sortable_links: bool,
    ) -> Optional[str]:
        report: Optional[ReportData] = state.get("latest_report")
        if report is None:
            return None
        preference: ThemePreference = state["theme_preference"]
        return render_report_html(
            report,
            theme=theme or preference.theme,
            sort_state=SortState(
                key=sort, direction=DESCENDING if direction == DESCENDING else ASCENDING
            ),
            language=state.get("latest_language") or reporting.default_language,
            report_width_px=reporting.visuals.report_width_px,
            sortable_links=sortable_links,
        )

    def _render_and_save(report: ReportData, topic: str, language: str) -> str:
        html = render_report_html(
            report,
            theme=state["theme_preference"].theme,
            language=language,
            report_width_px=reporting.visuals.report_width_px,
        )
        return save_report(report, html, output_dir, topic, language)

    @app.get("/", response_class=HTMLResponse)
    async def serve_index_page(
        sort: Optional[str] = None,
        direction: str = ASCENDING,
        theme: Optional[Theme] = None,
    ):
        """Serves the latest report, optionally sorted by a table column."""
        full_html_output = _render_latest(sort, direction, theme, sortable_links=True)
        if full_html_output is None:
            return HTMLResponse(
                content=f"<h1>Report Not Found</h1><p>{get_label(reporting.default_language, 'no_report')}</p>",
                status_code=404,
            )
        return HTMLResponse(content=full_html_output)

    @app.get("/report/download")
    async def download_report(
        sort: Optional[str] = None,
        direction: str = ASCENDING,
        theme: Optional[Theme] = None,
    ):
        """Returns the latest report as a downloadable, static HTML file."""
        full_html_output = _render_latest(sort, direction, theme, sortable_links=False)
        if full_html_output is None:
            return JSONResponse(
                content={"detail": "No report has been generated."}, status_code=404
            )
        return Response(
            content=full_html_output,
            media_type="text/html",
            headers={
                "Content-Disposition": f'attachment; filename="{constants.REPORT_HTML_FILENAME}"'
            },
        )

    @app.post("/api/reports")
    async def create_report(body: GenerateReportBody):
        """Generates a new report. Only one generation runs at a time."""
        if generation_lock.locked():
            return JSONResponse(
                content={"detail": "A report is already being generated."},
                status_code=409,
            )
        credentials: CredentialProvider = state["credentials"]
        async with generation_lock:
            if not credentials.has_usable_credential():
                await credentials.prompt_credential_selection()
            try:
                report = await generator.generate_report(body.config, body.profile)
            except CredentialMissingError as e:
                await credentials.prompt_credential_selection()
                return JSONResponse(content=e.to_dict(), status_code=401)
            except ReportGenerationError as e:
                return JSONResponse(content=e.to_dict(), status_code=502)

            state["latest_report"] = report
            state["latest_language"] = body.config.language
            if generator.config.output.save_reports:
                # Figure building and file writes stay off the event loop.
                await asyncio.to_thread(
                    _render_and_save, report, body.config.topic, body.config.language
                )
        return report.to_payload()

    @app.get("/api/reports/latest")
    async def latest_report():
        report: Optional[ReportData] = state.get("latest_report")
        if report is None:
            return JSONResponse(
                content={"detail": "No report has been generated."}, status_code=404
            )
        return report.to_payload()

    @app.get("/api/credential")
    async def credential_status():
        credentials: CredentialProvider = state["credentials"]
        return {"available": credentials.has_usable_credential()}

    @app.post("/api/theme/toggle")
    async def toggle_theme():
        preference: ThemePreference = state["theme_preference"]
        return {"theme": preference.toggle().value}

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        """Returns an empty response to prevent 404 errors for the favicon."""
        return Response(status_code=204)

    return app


# =============================================================================
# SCRIPT EXECUTION (The if __name__ == "__main__" block)
# =============================================================================
def main():
    """Parses command-line arguments and orchestrates report generation and serving."""
    parser = argparse.ArgumentParser(
        description="Generate a search-grounded business report with Gemini."
    )
    parser.add_argument(
        "--request",
        type=str,
        help="Path to a YAML file describing the report (topic, goal, region, ...).",
    )
    parser.add_argument(
        "--profile",
        type=str,
        choices=[p.value for p in ReportProfile],
        default=ReportProfile.GENERIC.value,
        help="Which report schema variant to request.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_REPORT_CONFIG_PATH,
        help="Path to the report generator YAML configuration.",
    )
    parser.add_argument(
        "--theme",
        type=str,
        choices=[t.value for t in Theme],
        help="Set (and remember) the report theme.",
    )
    parser.add_argument(
        "--port", type=int, default=5001, help="Port for the FastAPI server."
    )
    parser.add_argument(
        "--host", type=str, default="localhost", help="Host for the FastAPI server."
    )
    parser.add_argument(
        "--no-serve",
        action="store_true",
        help="Generate the report but do not start the web server.",
    )
    parser.add_argument(
        "--serve-only",
        action="store_true",
        help="Skip report generation, only start the server for the latest saved report.",
    )
    args = parser.parse_args()

    try:
        # --- Step 1: Initialize the report generator ---
        report_config = load_report_config(args.config)
        generator = ReportGenerator(config=report_config)
        report_request = None
        if not args.serve_only:
            if not args.request:
                parser.error("--request is required unless --serve-only is set.")
            report_request = load_report_request(args.request)
    except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
        logger.critical(f"Initialization Error: {e}")
        return  # Exit gracefully

    theme_preference = ThemePreference(
        FileThemeStore(THEME_PREFERENCE_PATH),
        platform_default=report_config.reporting.visuals.default_theme,
    )
    if args.theme:
        theme_preference.set(Theme(args.theme))

    app_state: Dict[str, Any] = {
        "generator": generator,
        "credentials": EnvironmentCredentialProvider(interactive=False),
        "theme_preference": theme_preference,
        "latest_report": None,
        "latest_language": None,
    }

    # --- Step 2: Generate report or find existing one ---
    if report_request is not None:
        report = asyncio.run(
            run_generation(
                generator,
                EnvironmentCredentialProvider(interactive=True),
                report_request,
                ReportProfile(args.profile),
            )
        )
        if report is None:
            return
        app_state["latest_report"] = report
        app_state["latest_language"] = report_request.language
        html_path = save_report(
            report,
            render_report_html(
                report,
                theme=theme_preference.theme,
                language=report_request.language,
                report_width_px=report_config.reporting.visuals.report_width_px,
            ),
            report_config.output.base_output_dir,
            report_request.topic,
            report_request.language,
        )
        logger.info(f"Successfully generated HTML report: {html_path}")
    else:
        logger.info("Serve-only mode: Finding latest report to serve.")
        latest_dir = restore_latest_report(
            app_state, report_config.output.base_output_dir
        )
        if latest_dir:
            logger.info(f"Will serve latest found report: {latest_dir}")
        else:
            logger.warning("No saved reports found; the server will accept new requests.")

    # --- Step 3: Start server if applicable ---
    if args.no_serve:
        logger.info("Report generation complete. --no-serve flag is set, so exiting.")
        return

    app = create_fastapi_app(app_state)
    server_url = f"http://{args.host}:{args.port}/"
    logger.info(f"FastAPI server starting. Access report at: {server_url}")
    try:
        # Open the browser only when a new report is generated.
        if report_request is not None:
            webbrowser.open_new_tab(server_url)
    except webbrowser.Error as e:
        logger.warning(f"Could not open web browser: {e}")
    logger.info("Press CTRL+C to stop.")
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
