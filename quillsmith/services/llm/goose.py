"""
Goose CLI completion service.

Runs ``goose run`` in headless mode as a subprocess for every prompt.
"""

import asyncio
import time
from typing import Optional

from quillsmith.config import get_settings
from quillsmith.services.llm.base import CompletionService
from quillsmith.services.llm.classifier import error_from_text, is_provider_error_text
from quillsmith.services.llm.models import CompletionResult, ModelOptions
from quillsmith.services.llm.pricing import build_cost_info
from quillsmith.utils.exceptions import ProviderRuntimeError
from quillsmith.utils.logging import get_logger

logger = get_logger(__name__)


def build_goose_args(prompt: str, options: Optional[ModelOptions] = None) -> list[str]:
    """
    Build ``goose`` CLI arguments.

    Provider and model flags are only passed when set; the prompt is always
    the final ``--text`` argument.
    """
    args = ["run", "--no-session", "--quiet"]
    if options and options.provider:
        args.extend(["--provider", options.provider])
    if options and options.model:
        args.extend(["--model", options.model])
    args.extend(["--text", prompt])
    return args


class GooseService(CompletionService):
    """
    Completion service backed by the ``goose`` command-line agent.
    """

    def __init__(
        self,
        command: Optional[str] = None,
        cwd: Optional[str] = None,
        default_options: Optional[ModelOptions] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.command = command or settings.llm.goose_command
        self.cwd = cwd
        self.default_options = default_options or ModelOptions(
            provider=settings.llm.default_provider,
            model=settings.llm.default_model,
        )
        self.timeout = timeout or settings.llm.timeout

    def _merge_options(self, options: Optional[ModelOptions]) -> ModelOptions:
        if options is None:
            return self.default_options
        return ModelOptions(
            provider=options.provider or self.default_options.provider,
            model=options.model or self.default_options.model,
        )

    async def prompt(
        self,
        text: str,
        options: Optional[ModelOptions] = None,
    ) -> CompletionResult:
        """Run one headless goose session and return its stdout."""
        final_options = self._merge_options(options)
        args = build_goose_args(text, final_options)

        logger.debug(
            f"Running {self.command} {' '.join(args[:-1])} <prompt: {len(text)} chars>"
        )
        start_time = time.time()

        try:
            process = await asyncio.create_subprocess_exec(
                self.command,
                *args,
                cwd=self.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ProviderRuntimeError(
                f"connection error: goose command not found: {self.command}",
                details=str(e),
            )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.error(f"Goose timeout after {self.timeout}s for {final_options}")
            raise ProviderRuntimeError(
                f"timeout after {self.timeout}s",
                details=f"Model: {final_options}",
            )

        duration = time.time() - start_time
        output = stdout.decode("utf-8", errors="replace")
        error_output = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            logger.error(
                f"Goose failed with exit code {process.returncode} "
                f"after {duration:.2f}s ({final_options})"
            )
            report = error_output.strip() or output.strip()
            if report:
                raise error_from_text(
                    f"Goose failed with exit code {process.returncode}: {report}"
                )
            raise ProviderRuntimeError(
                f"Goose failed with exit code {process.returncode}"
            )

        content = output.strip()
        if is_provider_error_text(content):
            logger.warning(f"Goose reported a provider error in its output ({final_options})")

        cost_info = build_cost_info(text, content, final_options)
        logger.info(
            f"Goose completed in {duration:.2f}s with {final_options}: "
            f"{len(content)} chars, ~${cost_info.total_cost:.6f}"
        )
        return CompletionResult(content=content, cost_info=cost_info)

    async def health_check(self) -> bool:
        """Check that the goose binary runs."""
        try:
            process = await asyncio.create_subprocess_exec(
                self.command,
                "--version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            await asyncio.wait_for(process.communicate(), timeout=10)
            return process.returncode == 0
        except (FileNotFoundError, asyncio.TimeoutError):
            return False
