"""Synthesis of resource graphs into deployment templates.

``core.synth.cdk_stack`` is imported on demand since it loads the CDK runtime.
"""

from .template import render_template, validate_remote

__all__ = ["render_template", "validate_remote"]
