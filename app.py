from __future__ import annotations
import logging
import streamlit as st
import pandas as pd
from orace.errors import EmptyExtractionError
from orace.export import diagnostics_frame, export_to_excel_bytes
from orace.extract import extract_registry
from orace.ingest import load_units_from_uploads
from orace.layout import load_layout
from orace.summary import competency_summary_frame, school_detail_frame, schools_frame, registry_wide_frame

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger("orace.app")

LAYOUT = load_layout()
st.set_page_config(page_title="Résultats Repères", layout="wide")
st.title("Extraction des résultats des évaluations Repères (ORACE)")
# =========================

# Uploads
# =========================
uploads = st.file_uploader(
    "Déposez les exports ORACE : classeur (xlsx/ods) ou fichiers CIRCO_ecoles_<NIVEAU><MATIÈRE>.csv",
    type=["xlsx", "xlsm", "ods", "xls", "csv"],
    accept_multiple_files=True,
)

st.subheader("Paramètres")
c1, c2 = st.columns(2)
with c1:
    workers = st.number_input("Feuilles traitées en parallèle", min_value=1, max_value=8, value=1)
with c2:
    show_debug = st.checkbox("Afficher le détail des colonnes retenues", value=False)

if st.button("Extraire", type="primary", disabled=not uploads):
    units = load_units_from_uploads(uploads, layout=LAYOUT)
    logger.info("%d source unit(s) from %d upload(s)", len(units), len(uploads))
    try:
        registry, report = extract_registry(units, layout=LAYOUT, max_workers=int(workers))
    except EmptyExtractionError as e:
        st.session_state["result_ready"] = False
        st.error("Aucune école extraite : vérifiez les fichiers (identification en ligne 1, ligne des groupes, noms des feuilles).")
        st.dataframe(diagnostics_frame(e.report), width="stretch")
    else:
        st.session_state["result_ready"] = True
        st.session_state["registry"] = registry
        st.session_state["report"] = report
        st.success(f"{len(registry)} écoles extraites.")


if st.session_state.get("result_ready"):
    registry = st.session_state["registry"]
    report = st.session_state["report"]
    summary = report.summary()

    with st.expander("Diagnostic de l'extraction", expanded=bool(report.warnings)):
        cc1, cc2, cc3, cc4 = st.columns(4)
        with cc1:
            st.metric("Sources traitées", f"{summary['units_ok']}/{summary['units']}")
        with cc2:
            st.metric("Compétences", summary["competencies"])
        with cc3:
            st.metric("Colonnes devinées", summary["heuristic_spans"])
        with cc4:
            st.metric("Valeurs illisibles", summary["unparsable_values"])

        for w in report.warnings:
            st.warning(w)
        if summary["unparsable_sample"]:
            st.write("Exemples de compétences avec valeurs illisibles :")
            st.write(summary["unparsable_sample"])
        st.dataframe(diagnostics_frame(report), width="stretch")

        if show_debug:
            for o in report.outcomes:
                if not o.ok:
                    continue
                st.markdown(f"**{o.source_name}** ({o.mode})")
                st.dataframe(pd.DataFrame([
                    {
                        "Compétence": s.name,
                        "Colonnes": f"{s.column_start}-{s.column_end}",
                        "Colonne % satisfaisant": s.resolved_value_column,
                        "Décalage": s.offset,
                        "Sûr": s.confident,
                    }
                    for s in o.spans
                ]), width="stretch", hide_index=True)

    st.subheader("Compétences par niveau et matière")
    st.dataframe(competency_summary_frame(registry), width="stretch", hide_index=True)

    st.subheader("Écoles")
    q = st.text_input("Recherche (UAI ou nom)", value="")
    sv = schools_frame(registry)
    if q.strip():
        mask = sv["UAI"].astype(str).str.contains(q.strip(), case=False, na=False) | \
            sv["École"].astype(str).str.contains(q.strip(), case=False, na=False)
        sv = sv[mask]
    st.dataframe(sv.head(500), width="stretch", hide_index=True)

    st.subheader("Détail d'une école")
    ids = registry.ids()
    sel = st.selectbox("UAI", ids, index=0 if ids else None)
    if sel:
        st.dataframe(school_detail_frame(registry, sel), width="stretch", hide_index=True)

    with st.expander("Tableau complet (une colonne par compétence)", expanded=False):
        st.dataframe(registry_wide_frame(registry), width="stretch")

    xbytes = export_to_excel_bytes(registry, report)
    st.download_button(
        "Télécharger le classeur Excel",
        data=xbytes,
        file_name="resultats_reperes.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
