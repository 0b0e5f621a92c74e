"""Image name resolution and Docker reference comparison.

Image names refer to entries of the project config ``images`` section. The
last built tag of an image, when known, is recorded under ``generated`` and
takes precedence over the configured tags.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

from kube_dev_swap.integrations.kubernetes.exceptions import ImageResolveError

if TYPE_CHECKING:
    from kube_dev_swap.core.config.models import GeneratedImage, ImageConfig, ProjectConfig

DEFAULT_DOMAIN = "docker.io"
LEGACY_DEFAULT_DOMAIN = "index.docker.io"
OFFICIAL_REPO_PREFIX = "library/"

_NAME_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG = re.compile(r"^[\w][\w.-]{0,127}$")
_PLACEHOLDER = re.compile(r"\b(image|tag)\(\s*([\w.-]+)\s*\)")


class ImageResolver(Protocol):
    """Resolves image names and replace-image expressions."""

    def resolve_image(self, expression: str) -> str:
        """Resolve a replace-image expression to a literal image reference."""
        ...

    def resolve_selector(self, image_name: str) -> list[str]:
        """Resolve an image name to the references its pods may run."""
        ...


def split_image_reference(reference: str) -> tuple[str, str | None]:
    """Split ``reference`` into repository and tag; digests are dropped.

    Example:
        >>> split_image_reference("localhost:5000/app:dev")
        ('localhost:5000/app', 'dev')
    """
    name = reference.strip().partition("@")[0]
    colon = name.rfind(":")
    if colon > name.rfind("/"):
        return name[:colon], name[colon + 1 :]
    return name, None


def strip_image_name(image_name: str) -> str:
    """Return the normalized repository name of a Docker image reference.

    Tag and digest are stripped. Images on Docker Hub lose the
    ``docker.io/`` domain and the ``library/`` namespace, so ``nginx``,
    ``library/nginx:1.25`` and ``docker.io/library/nginx`` all normalize to
    ``nginx``.

    Raises:
        ValueError: If ``image_name`` is not a valid reference.
    """
    name, tag = split_image_reference(image_name)
    if not name:
        raise ValueError("empty image name")
    if tag is not None and not _TAG.match(tag):
        raise ValueError(f"invalid tag in image name {image_name!r}")

    first, sep, rest = name.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        domain, path = first, rest
    else:
        domain, path = DEFAULT_DOMAIN, name
    if domain == LEGACY_DEFAULT_DOMAIN:
        domain = DEFAULT_DOMAIN

    if not path or not all(_NAME_COMPONENT.match(part) for part in path.split("/")):
        raise ValueError(f"invalid image name {image_name!r}")

    if domain == DEFAULT_DOMAIN:
        return path.removeprefix(OFFICIAL_REPO_PREFIX)
    return f"{domain}/{path}"


def compare_image_names(selector: str, image: str) -> bool:
    """Whether a container ``image`` matches an image ``selector``.

    An untagged selector matches every tag of the same repository. A tagged
    selector must match exactly, except that ``:latest`` also matches an
    untagged image. ``#`` in a tagged selector matches any single letter.
    """
    try:
        # "#" is not valid in a reference; the tag is stripped anyway
        stripped_selector = strip_image_name(selector.replace("#", "a"))
    except ValueError:
        stripped_selector = selector
    try:
        stripped_image = strip_image_name(image)
    except ValueError:
        stripped_image = image

    if stripped_selector == selector:
        return stripped_selector == stripped_image

    if stripped_selector + ":latest" == selector and stripped_image == image:
        return True
    if "#" in selector:
        pattern = "^" + re.escape(selector).replace(r"\#", "[a-zA-Z]") + "$"
        return re.match(pattern, image) is not None
    return selector == image


class ConfigImageResolver:
    """Image resolver backed by the ``images`` and ``generated`` config sections.

    Example:
        >>> resolver = ConfigImageResolver(
        ...     images={"api": ImageConfig(image="registry.local/api", tags=["dev"])},
        ... )
        >>> resolver.resolve_image("image(api):debug")
        'registry.local/api:debug'
    """

    def __init__(
        self,
        images: Mapping[str, ImageConfig] | None = None,
        generated: Mapping[str, GeneratedImage] | None = None,
    ) -> None:
        self._images = dict(images or {})
        self._generated = dict(generated or {})

    @classmethod
    def from_config(cls, config: ProjectConfig) -> ConfigImageResolver:
        """Create a resolver for a loaded project config."""
        return cls(images=config.images, generated=config.generated)

    def resolve_selector(self, image_name: str) -> list[str]:
        """Resolve ``image_name`` to a single image reference.

        The last built ``image:tag`` wins over the first configured tag,
        which wins over the bare image.

        Raises:
            ImageResolveError: If the image is not defined.
        """
        image_config = self._images.get(image_name)
        if image_config is None:
            raise ImageResolveError(f"couldn't find imageName {image_name}")

        generated = self._generated.get(image_name)
        if generated is not None and generated.image and generated.tag:
            return [f"{generated.image}:{generated.tag}"]
        if image_config.tags:
            return [f"{image_config.image}:{image_config.tags[0]}"]
        return [image_config.image]

    def resolve_image(self, expression: str) -> str:
        """Resolve a replace-image expression.

        ``image(name)`` and ``tag(name)`` are expanded from the config, a bare
        configured image name resolves to its full reference, and anything
        else is returned as a literal reference.

        Raises:
            ImageResolveError: If the expression is empty or refers to an
                unknown image.
        """
        expression = expression.strip()
        if not expression:
            raise ImageResolveError("empty replace image expression")
        if expression in self._images:
            return self._single(expression)
        return _PLACEHOLDER.sub(self._expand, expression)

    def _single(self, image_name: str) -> str:
        selectors = self.resolve_selector(image_name)
        if len(selectors) != 1:
            raise ImageResolveError(
                f"unexpected amount of image selectors for {image_name}: {len(selectors)}"
            )
        return selectors[0]

    def _expand(self, match: re.Match[str]) -> str:
        function, image_name = match.group(1), match.group(2)
        repository, tag = split_image_reference(self._single(image_name))
        if function == "image":
            return repository
        return tag or "latest"
