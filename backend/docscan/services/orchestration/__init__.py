"""Service orchestration layer: coordinates multi-service workflows.

Modules:
- analysis_pipeline: normalize -> submit -> poll -> extract -> persist for one upload.
"""
