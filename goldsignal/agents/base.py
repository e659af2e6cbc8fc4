"""Base utilities for AI agents.

This module provides common helpers for creating and running agents
using the OpenAI Agents SDK.
"""

import asyncio
import logging
import os
from typing import Any, Optional

# Disable tracing to avoid noisy 503 errors from telemetry
os.environ.setdefault("OPENAI_AGENTS_DISABLE_TRACING", "1")

from agents import Agent, Runner, set_default_openai_key


logger = logging.getLogger(__name__)

# Default model to use for agents
DEFAULT_MODEL = "gpt-4o-mini"


def configure_api_key(api_key: str) -> None:
    """Point the SDK at ``api_key`` instead of the environment."""
    set_default_openai_key(api_key, use_for_tracing=False)


def create_agent(
    name: str,
    instructions: str,
    model: Optional[str] = None,
) -> Agent:
    """Create an AI agent with the specified configuration.

    Args:
        name: Name of the agent.
        instructions: System instructions for the agent.
        model: Optional model override. Uses default if not specified.

    Returns:
        Configured Agent instance.
    """
    return Agent(
        name=name,
        instructions=instructions,
        model=model or DEFAULT_MODEL,
    )


async def run_agent_async(
    agent: Agent,
    message: str,
    context: Optional[dict[str, Any]] = None,
    timeout: Optional[float] = None,
) -> str:
    """Run an agent asynchronously and return the response.

    Args:
        agent: The agent to run.
        message: User message to send to the agent.
        context: Optional context dictionary to pass to the agent.
        timeout: Seconds to wait before giving up.

    Returns:
        Agent's response as a string.

    Raises:
        asyncio.TimeoutError: If the run exceeds ``timeout``.
    """
    logger.info("Agent: %s | Model: %s", agent.name, agent.model)
    result = await asyncio.wait_for(
        Runner.run(agent, message, context=context),
        timeout=timeout,
    )
    return str(result.final_output)
