"""Selection and validation of the active context."""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from ankh.config.config_data import AnkhConfig, Context
from ankh.errors import ContextError


def format_names(names: Iterable[str]) -> str:
    return "\n".join(f"* {name}" for name in sorted(names))


def _availability(config: AnkhConfig) -> str:
    return (
        "The following contexts are available:\n"
        f"{format_names(config.contexts)}\n"
        "The following environments are available:\n"
        f"{format_names(config.environments)}"
    )


def contexts_for_run(
    config: AnkhConfig, context_name: str = "", environment_name: str = ""
) -> list[str]:
    """Expand the requested selection into an ordered list of context names.

    An environment expands to its contexts; otherwise the explicit context,
    else the configured ``current-context``, is used once.

    Raises:
        ContextError: If both a context and an environment are given, or the
                      environment does not exist
    """
    if context_name and environment_name:
        raise ContextError(
            "Must not provide both `--context` and `--environment`, "
            "because an environment maps to one or more contexts."
        )

    if environment_name:
        environment = config.environments.get(environment_name)
        if environment is None:
            raise ContextError(
                f"Environment '{environment_name}' not found in `environments`",
                details="The following environments are available:\n"
                f"{format_names(config.environments)}",
            )
        logger.info(
            f'Executing over environment "{environment_name}" with contexts '
            f"[ {', '.join(environment.contexts)} ]"
        )
        return list(environment.contexts)

    return [context_name or config.current_context]


def check_context(config: AnkhConfig, name: str) -> Context:
    """Look up a context by name.

    Raises:
        ContextError: Listing the available contexts and environments
    """
    context = config.contexts.get(name)
    if context is not None:
        return context
    if not name:
        raise ContextError(
            "No context or environment provided. "
            "Provide one using -c/--context or -e/--environment.",
            details=_availability(config),
        )
    raise ContextError(
        f"Context '{name}' not found in `contexts`", details=_availability(config)
    )


def validate_context(name: str, context: Context, release: str = "") -> list[str]:
    """Collect field presence errors for a context."""
    errors = []
    if not context.kube_context and not context.kube_server:
        errors.append(
            f"Context '{name}' must define either `kube-context` or `kube-server`"
        )
    if not context.environment_class:
        errors.append(f"Context '{name}' is missing `environment-class`")
    if not context.resource_profile:
        errors.append(f"Context '{name}' is missing `resource-profile`")
    if not context.release and not release:
        errors.append(
            f"Context '{name}' has no `release`; provide one in the context "
            "or using -r/--release"
        )
    return errors


def switch_context(
    config: AnkhConfig,
    name: str,
    *,
    release: str = "",
    ignore_errors: bool = False,
) -> Context:
    """Resolve and validate a context, applying a command-line release override.

    Raises:
        ContextError: If the context does not exist, or fails validation and
                      ``ignore_errors`` is not set
    """
    logger.debug(f"Switching to context {name}")
    context = check_context(config, name)

    errors = validate_context(name, context, release)
    if errors:
        if not ignore_errors:
            raise ContextError(
                f"Context '{name}' is invalid", details="\n".join(f"- {e}" for e in errors)
            )
        for error in errors:
            logger.warning(error)

    if release:
        context = context.model_copy(update={"release": release})
    return context
