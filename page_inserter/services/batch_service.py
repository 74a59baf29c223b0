from __future__ import annotations

import csv
import io
import re
import zipfile

from page_inserter.domain.models import RunResult


class BatchService:
    """Packages delivered artifacts and renders run reports."""

    @staticmethod
    def _safe_artifact_name(name: str) -> str:
        clean = name.replace("\\", "/").split("/")[-1]
        clean = re.sub(r"[^A-Za-z0-9._() -]", "_", clean).strip()
        return clean or "merged.pdf"

    @staticmethod
    def build_zip(
        deliveries: list[tuple[str, bytes]], zip_name: str = "merged_outputs.zip"
    ) -> tuple[str, bytes]:
        buffer = io.BytesIO()
        used_names: dict[str, int] = {}
        with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
            for artifact_name, artifact_bytes in deliveries:
                if not artifact_bytes:
                    continue
                safe_name = BatchService._safe_artifact_name(artifact_name)
                stem, dot, extension = safe_name.rpartition(".")
                if not stem:
                    stem = safe_name
                    dot = ""
                    extension = ""
                sequence = used_names.get(safe_name, 0)
                used_names[safe_name] = sequence + 1
                unique_name = safe_name
                if sequence > 0:
                    unique_name = f"{stem} ({sequence + 1}){dot}{extension}"
                archive.writestr(unique_name, artifact_bytes)
        return zip_name, buffer.getvalue()

    @staticmethod
    def build_csv(result: RunResult) -> tuple[str, bytes]:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(
            [
                "document",
                "source_name",
                "status",
                "error_kind",
                "main_pages",
                "output_pages",
                "artifact_name",
                "messages",
            ]
        )
        for item in result.items:
            writer.writerow(
                [
                    item.document_index + 1,
                    item.source_name,
                    item.status.value,
                    item.error_kind.value if item.error_kind else "",
                    item.metrics.get("main_pages", ""),
                    item.metrics.get("output_pages", ""),
                    item.artifact_name or "",
                    " | ".join(message.text for message in item.messages),
                ]
            )
        return "merge_report.csv", buffer.getvalue().encode("utf-8")

    @staticmethod
    def build_text_summary(result: RunResult) -> tuple[str, str]:
        lines: list[str] = []
        lines.append("Merge Run Summary")
        lines.append(
            f"state={result.state.value} "
            f"success={result.success_count} "
            f"error={result.error_count}"
        )
        lines.append("")
        for item in result.items:
            header = f"[{item.status.value.upper()}] {item.source_name}"
            if item.error_kind is not None:
                header += f" ({item.error_kind.value})"
            lines.append(header)
            if item.metrics:
                lines.append("metrics: " + ", ".join(f"{k}={v}" for k, v in item.metrics.items()))
            if item.messages:
                lines.extend(f"- {msg.text}" for msg in item.messages)
            lines.append("")
        return "merge_report.txt", "\n".join(lines).rstrip() + "\n"
