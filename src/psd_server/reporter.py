"""
Builds conversion reports from accumulated metrics.
"""

from .core.config import get_logger
from .models import ConversionMetrics, ConversionReport

logger = get_logger("reporter")


def build_report(metrics: ConversionMetrics, elapsed_ms: int) -> ConversionReport:
    """Freeze the metrics into a report and log a summary."""
    report = ConversionReport(
        total_layers=metrics.total_layers,
        editable_layers=metrics.editable_layers,
        flattened_layers=metrics.flattened_layers,
        unsupported_features=tuple(metrics.unsupported_features),
        processing_time_ms=int(elapsed_ms),
        warnings=tuple(metrics.warnings),
    )

    logger.info(
        "Conversion report: %d layers, %d editable, %d flattened, %d warnings in %dms",
        report.total_layers,
        report.editable_layers,
        report.flattened_layers,
        len(report.warnings),
        report.processing_time_ms,
    )
    return report


def format_report(report: ConversionReport) -> str:
    lines = [
        "=== Conversion Report ===",
        f"Total Layers: {report.total_layers}",
        f"Editable Layers: {report.editable_layers}",
        f"Flattened Layers: {report.flattened_layers}",
        f"Processing Time: {report.processing_time_ms / 1000:.2f}s",
    ]

    if report.unsupported_features:
        lines.append("")
        lines.append("Unsupported Features:")
        for index, feature in enumerate(report.unsupported_features, start=1):
            lines.append(
                f"  {index}. {feature.layer_name} ({feature.feature}): {feature.reason}"
            )

    if report.warnings:
        lines.append("")
        lines.append("Warnings:")
        for index, warning in enumerate(report.warnings, start=1):
            lines.append(f"  {index}. {warning}")

    return "\n".join(lines)
