"""Forecasting constants and default reference tables.

These are DEFAULTS. They are loaded once into ``ForecastTables``
(see tables.py) and injected into the pipeline; nothing in the
pipeline reads this module directly at request time.
"""

from typing import Final

# Grid shape expected by the forecasting model
ENCODER_LENGTH: Final[int] = 48  # Hourly historical slots; slot 47 is "now"
FORECAST_HORIZON: Final[int] = 24  # Hourly forecast slots
INJECTION_SLOTS: Final[int] = 3  # Encoder slots 45-47 carry the simulated dose

GLUCOSE_UNITS: Final[str] = "mg/dL"
TARGET_FEATURE: Final[str] = "lab_Glucose"
AGE_FEATURE: Final[str] = "anchor_age"

# Medication doses are divided by this instead of being z-scored.
MED_DOSE_DIVISOR: Final[float] = 1e11

# Post-processing heuristics
PRESCALE_TRIGGER_MEAN_ABS: Final[float] = 50.0  # Raw output looks unscaled above this
PRESCALE_FACTOR: Final[float] = 0.05
BASELINE_FALLBACK_MGDL: Final[float] = 120.0  # Used when the patient has no glucose labs
CLAMP_MIN_MGDL: Final[float] = 40.0
CLAMP_MAX_MGDL: Final[float] = 400.0
EFFECT_SCALE_DIVISOR: Final[float] = 50.0
EFFECT_SCALE_FLOOR: Final[float] = 0.1
DEFAULT_RELATIVE_EFFECT: Final[float] = 1.0
RUNAWAY_MEAN_MGDL: Final[float] = 500.0
RUNAWAY_TARGET_MEAN_MGDL: Final[float] = 180.0
# Raw model values beyond this magnitude are capped before any arithmetic
RAW_MAGNITUDE_CAP: Final[float] = 1e6

# Medications the model was trained with, in model column order
MEDICATIONS: Final[tuple[str, ...]] = (
    "Tacrolimus",
    "Insulin",
    "Olanzapine",
    "Glucagon",
    "Dexamethasone",
    "Sirolimus",
    "Prednisone",
    "Tacrolimus XR",
    "Triamterene-HCTZ (37.5/25)",
    "GlipiZIDE XL",
    "Furosemide",
    "Hydrocortisone",
    "Hydrocortisone Na",
    "Hydrochlorothiazide",
    "Spironolactone",
    "Empagliflozin",
    "CycloSPORINE (Sandimmune)",
    "Eplerenone",
    "Chlorthalidone",
    "Phenytoin",
    "CycloSPORINE (Neoral) MODIFIED",
    "Octreotide Acetate",
    "Fosphenytoin",
    "Phenytoin Sodium (IV)",
    "Valproate Sodium",
    "Dextrose Water",
    "Ritonavir",
    "MetFORMIN XR (Glucophage XR)",
    "Dextrose 50%",
    "MetFORMIN (Glucophage)",
)

# Lab category -> subtypes. "Combined" means the category has a single
# implicit subtype and the key omits it; "-" means "no subtype".
COMBINED_SUBTYPE: Final[str] = "Combined"
NO_SUBTYPE: Final[str] = "-"
LAB_TYPES: Final[dict[str, tuple[str, ...]]] = {
    "Hemoglobin A1c": (NO_SUBTYPE,),
    "LDL": ("Calculated", "Measured"),
    "Cholesterol": ("Serum", "HDL"),
    "Chloride": (COMBINED_SUBTYPE,),
    "Glucose": (COMBINED_SUBTYPE,),
    "Potassium": (COMBINED_SUBTYPE,),
    "Sodium": (COMBINED_SUBTYPE,),
    "Triglycerides": ("Serum",),
}

# (mean, std) from the model's training set
SCALER_STATS: Final[dict[str, tuple[float, float]]] = {
    "lab_Glucose": (145.25, 112.60),
    "lab_Chloride": (102.8, 5.9),
    "lab_Potassium": (4.21, 0.68),
    "lab_Sodium": (138.6, 4.7),
    "lab_Hemoglobin_A1c": (7.12, 1.86),
    "lab_LDL_Calculated": (96.4, 38.2),
    "lab_LDL_Measured": (101.7, 44.9),
    "lab_Cholesterol_Serum": (168.3, 45.1),
    "lab_Cholesterol_HDL": (44.6, 15.3),
    "lab_Triglycerides_Serum": (151.9, 118.4),
    "anchor_age": (63.5, 15.8),
}

# Relative direction/strength of each drug's effect on glucose.
# Negative lowers the curve, positive raises it.
MEDICATION_EFFECTS: Final[dict[str, float]] = {
    "med_insulin": -0.6,
    "med_glipizide_xl": -0.35,
    "med_metformin_glucophage": -0.25,
    "med_metformin_xr_glucophage_xr": -0.25,
    "med_empagliflozin": -0.2,
    "med_octreotide_acetate": -0.1,
    "med_glucagon": 0.5,
    "med_dextrose_50_percent": 0.6,
    "med_dextrose_water": 0.3,
    "med_dexamethasone": 0.4,
    "med_prednisone": 0.35,
    "med_hydrocortisone": 0.3,
    "med_hydrocortisone_na": 0.3,
    "med_olanzapine": 0.2,
    "med_tacrolimus": 0.15,
    "med_tacrolimus_xr": 0.15,
    "med_cyclosporine_sandimmune": 0.1,
    "med_cyclosporine_neoral_modified": 0.1,
    "med_sirolimus": 0.1,
    "med_ritonavir": 0.1,
    "med_hydrochlorothiazide": 0.05,
    "med_chlorthalidone": 0.05,
    "med_triamterene_hctz_37_5_25": 0.05,
    "med_phenytoin": 0.05,
    "med_phenytoin_sodium_iv": 0.05,
    "med_fosphenytoin": 0.05,
    "med_valproate_sodium": 0.0,
    "med_furosemide": 0.0,
    "med_spironolactone": 0.0,
    "med_eplerenone": 0.0,
}
