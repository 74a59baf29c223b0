from __future__ import annotations

import streamlit as st

from page_inserter.adapters.pymupdf_adapter import PyMuPdfAdapter
from page_inserter.domain.errors import PageInserterError, ValidationError
from page_inserter.domain.models import FitPolicy, ProgressEvent, ProgressPhase, RunResult
from page_inserter.infrastructure.config import AppConfig
from page_inserter.infrastructure.filler_resolver import DefaultFillerResolver
from page_inserter.infrastructure.logging_setup import configure_logging
from page_inserter.services.batch_service import BatchService
from page_inserter.services.merge_service import MergeService

POLICY_LABELS = {
    FitPolicy.SCALED_FIT: "Scaled fit (keep filler proportions)",
    FitPolicy.STRETCH_FIT: "Stretch fit (resize page only)",
}


def _init_state() -> None:
    st.session_state.setdefault("main_uploader_token", 0)
    st.session_state.setdefault("deliveries", [])
    st.session_state.setdefault("run_result", None)


def _validate_upload_limits(config: AppConfig, files: list[tuple[str, bytes]]) -> None:
    total = sum(len(content) for _, content in files)
    if total > config.max_batch_size_bytes:
        raise ValidationError(f"Batch exceeds {config.max_batch_size_mb} MB limit.")
    for name, _ in files:
        if not name.lower().endswith(".pdf"):
            raise ValidationError(f"{name} is not a PDF file.")


def _resolve_filler(config: AppConfig) -> tuple[str, bytes] | None:
    uploaded_filler = st.sidebar.file_uploader(
        "Filler PDF (single page)", type=["pdf"], key="filler_upload"
    )
    if uploaded_filler is not None:
        st.sidebar.caption(f"Using uploaded filler: {uploaded_filler.name}")
        return uploaded_filler.name, uploaded_filler.getvalue()
    try:
        filler = DefaultFillerResolver(config.default_filler_path).resolve()
    except PageInserterError as exc:
        st.sidebar.warning(str(exc))
        return None
    st.sidebar.caption(f"Using default filler: {filler[0]}")
    return filler


def _render_run_summary(result: RunResult, batch_service: BatchService) -> None:
    metric_col_1, metric_col_2, metric_col_3 = st.columns(3)
    metric_col_1.metric("Run", result.state.value.replace("_", " ").title())
    metric_col_2.metric("Success", result.success_count)
    metric_col_3.metric("Error", result.error_count)

    rows = []
    for item in result.items:
        rows.append(
            {
                "File": item.source_name,
                "Status": item.status.value.title(),
                "Error": item.error_kind.value if item.error_kind else "",
                "Details": " | ".join(message.text for message in item.messages),
            }
        )
    st.dataframe(rows, use_container_width=True)

    report_name, report_text = batch_service.build_text_summary(result)
    csv_name, csv_bytes = batch_service.build_csv(result)
    report_col, csv_col = st.columns(2)
    report_col.download_button("Download Report", data=report_text, file_name=report_name)
    csv_col.download_button(
        "Download CSV", data=csv_bytes, file_name=csv_name, mime="text/csv"
    )


def _render_downloads(batch_service: BatchService) -> None:
    deliveries: list[tuple[str, bytes]] = st.session_state.deliveries
    if not deliveries:
        return
    for index, (artifact_name, artifact_bytes) in enumerate(deliveries):
        st.download_button(
            f"Download {artifact_name}",
            data=artifact_bytes,
            file_name=artifact_name,
            mime="application/pdf",
            key=f"download_{index}",
        )
    if len(deliveries) > 1:
        zip_name, zip_bytes = batch_service.build_zip(deliveries)
        st.download_button(
            "Download All (ZIP)",
            data=zip_bytes,
            file_name=zip_name,
            mime="application/zip",
            type="primary",
        )


def _insert_tab(config: AppConfig, adapter: PyMuPdfAdapter, batch_service: BatchService) -> None:
    st.subheader("Insert Filler Page", anchor=False)
    st.caption("Insert the filler page after every page of each uploaded PDF.")

    filler = _resolve_filler(config)
    policy = st.sidebar.radio(
        "Filler sizing",
        options=list(POLICY_LABELS),
        format_func=lambda item: POLICY_LABELS[item],
        index=list(POLICY_LABELS).index(config.fit_policy),
    )
    batch_size = int(
        st.sidebar.number_input(
            "Pages per batch", min_value=1, value=config.page_batch_size, step=1
        )
    )

    uploaded = st.file_uploader(
        (
            "Choose one or more PDFs "
            f"(max {config.max_pdf_size_mb} MB each, "
            f"{config.max_batch_size_mb} MB total)"
        ),
        type=["pdf"],
        accept_multiple_files=True,
        key=f"main_upload_{st.session_state.main_uploader_token}",
    )
    if st.button("Clear All PDFs"):
        st.session_state.main_uploader_token += 1
        st.session_state.deliveries = []
        st.session_state.run_result = None
        st.rerun()
    files = [(item.name, item.getvalue()) for item in uploaded] if uploaded else []
    for name, content in files:
        try:
            st.write(f"📄 {name}: {adapter.get_page_count(content)} page(s)")
        except PageInserterError:
            st.write(f"📄 {name}: unreadable")

    if st.button("Generate Merged PDFs", type="primary"):
        deliveries: list[tuple[str, bytes]] = []
        status = st.empty()
        document_bar = st.progress(0)
        page_bar = st.progress(0)

        def on_progress(event: ProgressEvent) -> None:
            fraction = event.position / event.total if event.total else 1.0
            if event.phase == ProgressPhase.DOCUMENTS:
                status.info(event.label)
                document_bar.progress(fraction)
                page_bar.progress(0)
            else:
                page_bar.progress(fraction, text=f"{event.document_name}: {event.label}")

        def deliver(data: bytes, file_name: str) -> None:
            deliveries.append((file_name, data))

        try:
            _validate_upload_limits(config, files)
            service = MergeService(adapter, config)
            result = service.run(
                filler, files, deliver, on_progress, policy=policy, batch_size=batch_size
            )
        except PageInserterError as exc:
            status.error(str(exc))
            return
        st.session_state.deliveries = deliveries
        st.session_state.run_result = result
        if result.error_count:
            status.warning(f"Finished with {result.error_count} failed document(s).")
        else:
            status.success("All PDFs processed successfully!")

    if st.session_state.run_result is not None:
        _render_run_summary(st.session_state.run_result, batch_service)
    _render_downloads(batch_service)


def main() -> None:
    config = AppConfig()
    configure_logging(config.log_level)
    st.set_page_config(page_title="PDF Page Inserter", layout="wide")
    st.title("PDF Page Inserter", anchor=False)

    _init_state()
    _insert_tab(config, PyMuPdfAdapter(), BatchService())


if __name__ == "__main__":
    main()
