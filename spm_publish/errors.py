"""
Exceptions raised while configuring and publishing Swift packages.

Nothing here is retried: every error is fatal to the variant pipeline that raised it
and propagates to the caller, which decides whether other variants keep running.
Missing files and write failures use the builtin FileNotFoundError / OSError.
"""


class PublishError(Exception):
    """Base class for all spm-publish errors."""


class ConfigurationError(PublishError):
    """Invalid platform grouping, empty platform set, or bad options."""


class UnsupportedTargetError(PublishError):
    """A compile target has no mapping to a concrete toolchain target."""

    def __init__(self, target: str):
        super().__init__(f"Target {target} is not supported.")
        self.target = target


class EmptyResultError(PublishError):
    """An external tool finished but produced no usable output."""


class ExternalCommandError(PublishError):
    """An external command exited non-zero or timed out."""

    def __init__(self, args: list[str], message: str):
        super().__init__(f"{' '.join(args)}: {message}")
        self.args_list = args


class TemplateRenderError(PublishError):
    """The Package.swift template could not be rendered."""

    def __init__(self, template_path: object, message: str):
        super().__init__(f"Failed to render Swift package template {template_path}: {message}")
        self.template_path = template_path
