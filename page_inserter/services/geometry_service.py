from __future__ import annotations

from page_inserter.domain.errors import UnsupportedContent
from page_inserter.domain.models import FitPolicy, FitResult, PageSize


def compute_fit(
    target_width: float,
    target_height: float,
    source_width: float,
    source_height: float,
    policy: FitPolicy = FitPolicy.SCALED_FIT,
) -> FitResult:
    """Size a filler page to a target page.

    Both policies give the filler page the target's declared size. Scaled-fit
    also scales the filler content uniformly by the smaller of the two axis
    ratios, so it keeps its aspect ratio and may leave part of the page empty.
    Stretch-fit leaves the content unscaled.
    """
    if min(target_width, target_height, source_width, source_height) <= 0:
        raise UnsupportedContent(
            "Page dimensions must be positive "
            f"(target {target_width}x{target_height}, source {source_width}x{source_height})"
        )

    if policy == FitPolicy.STRETCH_FIT:
        return FitResult(
            width=target_width, height=target_height, scale_factor=1.0, policy=policy
        )

    scale = min(target_width / source_width, target_height / source_height)
    return FitResult(width=target_width, height=target_height, scale_factor=scale, policy=policy)


def fit_to_page(target: PageSize, source: PageSize, policy: FitPolicy) -> FitResult:
    return compute_fit(target.width, target.height, source.width, source.height, policy)
