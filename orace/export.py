from __future__ import annotations
import pandas as pd
from io import BytesIO
from typing import Optional
from .extract import ExtractionReport
from .registry import SchoolRegistry
from .summary import competency_summary_frame, registry_wide_frame, schools_frame


def diagnostics_frame(report: ExtractionReport) -> pd.DataFrame:
    rows = []
    for o in report.outcomes:
        rows.append({
            "Source": o.source_name,
            "Niveau": o.level or "",
            "Matière": o.subject or "",
            "Statut": o.status,
            "Message": o.message,
            "Mode": o.mode,
            "Ligne groupes": "" if o.group_row is None else o.group_row + 1,
            "Ligne %": "" if o.percentage_row is None else o.percentage_row + 1,
            "1re ligne école": "" if o.first_data_row is None else o.first_data_row + 1,
            "Compétences": len(o.spans),
            "Colonnes devinées": len(o.heuristic_spans),
            "Décalages réguliers": "oui" if o.regular_offsets else "non",
            "Lignes lues": o.rows_mapped,
            "Écoles avec résultats": o.schools_contributed,
            "Valeurs illisibles": len(o.unparsable),
        })
    return pd.DataFrame(rows)


def export_to_excel_bytes(registry: SchoolRegistry, report: Optional[ExtractionReport] = None) -> bytes:
    bio = BytesIO()

    wide_df = registry_wide_frame(registry)
    schools_df = schools_frame(registry)
    comp_df = competency_summary_frame(registry)
    diag_df = diagnostics_frame(report) if report is not None else pd.DataFrame()

    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        wide_df.to_excel(writer, index=False, sheet_name="Résultats")
        schools_df.to_excel(writer, index=False, sheet_name="Écoles")
        comp_df.to_excel(writer, index=False, sheet_name="Compétences")
        if not diag_df.empty:
            diag_df.to_excel(writer, index=False, sheet_name="Diagnostic")

        wb = writer.book
        fmt_header = wb.add_format({"bold": True, "bg_color": "#F2F2F2", "border": 1, "valign": "vcenter", "text_wrap": True})
        fmt_pct = wb.add_format({"num_format": "0.0"})
        fmt_lvl_err = wb.add_format({"bg_color": "#FCE8E6"})

        def format_df_sheet(sheet_name: str, df: pd.DataFrame, default_width: int = 18, max_width: int = 60):
            ws = writer.sheets.get(sheet_name)
            if ws is None:
                return
            ws.freeze_panes(1, 0)
            ws.autofilter(0, 0, max(1, len(df)), max(0, len(df.columns) - 1))
            for col, name in enumerate(df.columns):
                ws.write(0, col, name, fmt_header)
                w = max(10, min(max_width, int(len(str(name)) * 1.1) + 4))
                ws.set_column(col, col, max(default_width, w))

        format_df_sheet("Résultats", wide_df)
        ws = writer.sheets["Résultats"]
        ws.freeze_panes(1, 2)
        if len(wide_df.columns) > 2:
            ws.set_column(2, len(wide_df.columns) - 1, 16, fmt_pct)

        format_df_sheet("Écoles", schools_df, default_width=16, max_width=50)
        format_df_sheet("Compétences", comp_df, default_width=14, max_width=60)

        if not diag_df.empty:
            format_df_sheet("Diagnostic", diag_df, default_width=14, max_width=50)
            ws_diag = writer.sheets["Diagnostic"]
            ws_diag.set_column(0, 0, 36)
            ws_diag.set_column(4, 4, 60)
            # rejected units stand out
            for i, status in enumerate(diag_df["Statut"].tolist(), start=1):
                if status != "ok":
                    ws_diag.set_row(i, None, fmt_lvl_err)

    return bio.getvalue()
