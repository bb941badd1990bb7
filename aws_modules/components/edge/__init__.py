"""
Edge components: CloudFront distribution with Origin Access Control.
"""

from aws_modules.components.edge.cloudfront import (
    CloudFrontArgs,
    CloudFrontComponent,
    CloudFrontOutputs,
)

__all__ = [
    "CloudFrontArgs",
    "CloudFrontComponent",
    "CloudFrontOutputs",
]
