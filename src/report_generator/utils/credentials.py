"""
The ambient API-key capability used around report generation.

Callers (the CLI and the web server) ask `has_usable_credential()` before a
generation request and call `prompt_credential_selection()` when it is false
or when a request failed with `CredentialMissingError`. The report generator
itself never calls into this module.
"""

import asyncio
import getpass
import logging
import os
from typing import Optional, Protocol

from dotenv import load_dotenv

from ... import constants

logger = logging.getLogger(__name__)


class CredentialProvider(Protocol):
    def has_usable_credential(self) -> bool: ...

    async def prompt_credential_selection(self) -> None: ...


class EnvironmentCredentialProvider:
    """
    Reads the Gemini API key from the process environment.

    A `.env` file in the working directory is loaded first, if present. In
    interactive mode the selection prompt asks for a key on the terminal and
    stores it in the environment for subsequent requests; otherwise it only
    logs how to configure one.
    """

    def __init__(
        self,
        env_var: str = constants.API_KEY_ENV_VAR,
        interactive: bool = False,
        load_env_file: bool = True,
    ):
        self.env_var = env_var
        self.interactive = interactive
        if load_env_file:
            load_dotenv()

    @property
    def api_key(self) -> Optional[str]:
        value = os.environ.get(self.env_var, "").strip()
        return value or None

    def has_usable_credential(self) -> bool:
        return self.api_key is not None

    async def prompt_credential_selection(self) -> None:
        if not self.interactive:
            logger.warning(
                f"No usable API key. Set {self.env_var} in the environment or in a "
                ".env file, using a key from a billing-enabled project."
            )
            return

        key = await asyncio.to_thread(
            getpass.getpass, f"Enter a Gemini API key for {self.env_var}: "
        )
        if key.strip():
            os.environ[self.env_var] = key.strip()
            logger.info("API key selected for this session.")
        else:
            logger.warning("No API key entered.")
