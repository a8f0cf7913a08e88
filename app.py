"""PeriodTrack API with the Gradio symptom logger mounted at ``/ui``."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import gradio as gr

from cycle.errors import CorruptEncoding, EncodingRejected, PersistFailed
from cycle.log_symptoms import log_symptoms
from cycle.period_schema import SymptomType
from server.main import app as api_app


logger = logging.getLogger(__name__)

SYMPTOM_CHOICES = [s.value for s in SymptomType]


def save_symptoms(selected: Optional[List[str]]) -> Tuple[str, List[str]]:
    """Save handler for the symptom screen.

    Returns the status text and the new checkbox selection: cleared after a
    successful save, kept after a failure so the user can retry.
    """
    selected = list(selected or [])
    if not selected:
        return "Select at least one symptom.", selected

    try:
        saved = log_symptoms(selected)
    except PersistFailed:
        logger.exception("Symptom save failed")
        return "Save failed, please try again.", selected
    except CorruptEncoding:
        logger.exception("Stored symptoms unreadable")
        return "Saved symptoms for this period could not be read.", selected
    except EncodingRejected as exc:
        return f"Invalid selection: {exc}", selected

    names = ", ".join(saved.symptoms or [])
    return f"Saved: {names}", []


with gr.Blocks(title="PeriodTrack") as demo:
    gr.Markdown("### Symptoms  \nSelect what you're experiencing")
    symptom_box = gr.CheckboxGroup(choices=SYMPTOM_CHOICES, label="Symptoms")
    save_btn = gr.Button("Save Symptoms")
    status_box = gr.Markdown()

    save_btn.click(save_symptoms, inputs=[symptom_box], outputs=[status_box, symptom_box])


app = gr.mount_gradio_app(api_app, demo, path="/ui")
