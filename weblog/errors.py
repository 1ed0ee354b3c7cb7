from __future__ import annotations


class WeblogError(Exception):
    pass


class FatalBuildError(WeblogError):
    pass


class ConfigError(FatalBuildError):
    pass


class ManifestError(FatalBuildError):
    pass


class TemplateError(FatalBuildError):
    pass


class OutputDirError(FatalBuildError):
    pass


class ArtifactError(WeblogError):
    pass


class DocumentError(ArtifactError):
    pass


class RenderError(ArtifactError):
    pass


class ArticleError(ArtifactError):
    pass


class FeedError(ArtifactError):
    pass


def combine_errors(primary: BaseException, action: str, secondary: BaseException) -> WeblogError:
    # Keeps the class of primary when it is one of ours.
    message = f"{primary}; and {action}: {secondary}"
    if isinstance(primary, WeblogError):
        return type(primary)(message)
    return ArtifactError(message)
