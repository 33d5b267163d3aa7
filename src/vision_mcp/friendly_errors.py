"""Consumer-friendly error messages for the CLI.

Maps VisionMCPError kinds (and common upstream statuses) to human-readable
messages with actionable steps.
"""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import ErrorKind, ModelAPIError, to_vision_error


@dataclass
class FriendlyError:
    """A consumer-friendly error with a fix suggestion."""

    title: str
    message: str
    fix: str


def friendly_error(error: BaseException) -> FriendlyError:
    err = to_vision_error(error)

    if err.kind == ErrorKind.MODEL_CONFIG_ERROR:
        return FriendlyError(
            title="Vision model not configured",
            message=err.message,
            fix=(
                "Set the model via environment variables, for example:\n"
                "  VISION_MODEL_TYPE=openai\n"
                "  VISION_API_KEY=sk-...\n"
                "or pass --config with a YAML file containing a 'model:' section.\n"
                "Run 'vision-mcp providers' to list supported model types."
            ),
        )

    if isinstance(err, ModelAPIError):
        if err.status in (401, 403):
            return FriendlyError(
                title="API key rejected",
                message="The vision provider refused your API key.",
                fix=(
                    "Check VISION_API_KEY. Keys may have expired or been revoked, "
                    "or belong to a different provider than VISION_MODEL_TYPE."
                ),
            )
        if err.status == 429 or "rate limit" in err.message.lower():
            return FriendlyError(
                title="Provider rate limit",
                message=err.message,
                fix="Wait a moment and try again, or upgrade your API plan.",
            )
        if err.status == 404:
            return FriendlyError(
                title="Model or endpoint not found",
                message=err.message,
                fix="Check VISION_MODEL_NAME and VISION_API_BASE_URL.",
            )

    if err.kind == ErrorKind.TIMEOUT_ERROR:
        return FriendlyError(
            title="Vision provider timed out",
            message=err.message,
            fix=(
                "The model took too long to respond. Try a smaller image, or raise "
                "VISION_API_TIMEOUT (milliseconds)."
            ),
        )

    if err.kind == ErrorKind.IMAGE_LOAD_ERROR:
        return FriendlyError(
            title="Image could not be read",
            message=err.message,
            fix="Check that the file exists, is not empty, and is readable.",
        )

    if err.kind == ErrorKind.INVALID_INPUT:
        return FriendlyError(
            title="Invalid request",
            message=err.message,
            fix=(
                "Images must be an http(s) URL, a data:image/...;base64 URL, or a "
                "local .jpg/.jpeg/.png/.webp file. Run 'vision-mcp templates' to "
                "list template ids."
            ),
        )

    return FriendlyError(
        title="Vision analysis error",
        message=err.message,
        fix="This is usually temporary. Try again, or set LOG_LEVEL=debug for details.",
    )


def format_friendly_error(err: FriendlyError) -> str:
    """Format a FriendlyError for display in the terminal."""
    lines = [
        f"⚠️  {err.title}",
        f"   {err.message}",
        "",
        "💡 How to fix:",
    ]
    for line in err.fix.split("\n"):
        lines.append(f"   {line}")
    return "\n".join(lines)
