from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Union

# Values coming from the records API are not consistently typed
# (e.g. age_from is "18" in some records and 18 in others).
LooseNumber = Union[int, float, str, None]
YesNo = Union[bool, str, None]


class _Section(BaseModel):
    """Base for trial sub-records; unknown attributes are kept, not rejected."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    trial_id: Optional[str] = None


class TrialOverview(BaseModel):
    """Scalar descriptive fields of a trial."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    trial_id: Optional[str] = None  # TB-XXXXXX display identifier
    therapeutic_area: Optional[str] = None
    trial_identifier: Optional[List[str]] = Field(default_factory=list)
    trial_phase: Optional[str] = None
    status: Optional[str] = None
    primary_drugs: Optional[str] = None
    other_drugs: Optional[str] = None
    title: Optional[str] = None
    disease_type: Optional[str] = None
    patient_segment: Optional[str] = None
    line_of_therapy: Optional[str] = None
    reference_links: Optional[List[str]] = Field(default_factory=list)
    trial_tags: Optional[str] = None
    sponsor_collaborators: Optional[str] = None
    sponsor_field_activity: Optional[str] = None
    associated_cro: Optional[str] = None
    countries: Optional[str] = None
    region: Optional[str] = None
    trial_record_status: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    original_trial_id: Optional[str] = None
    is_updated_version: Optional[bool] = None


class TrialOutcome(_Section):
    purpose_of_trial: Optional[str] = None
    summary: Optional[str] = None
    primary_outcome_measure: Optional[str] = None
    other_outcome_measure: Optional[str] = None
    study_design_keywords: Optional[str] = None
    study_design: Optional[str] = None
    treatment_regimen: Optional[str] = None
    number_of_arms: LooseNumber = None


class TrialEligibility(_Section):
    inclusion_criteria: Optional[str] = None
    exclusion_criteria: Optional[str] = None
    age_from: LooseNumber = None
    age_to: LooseNumber = None
    subject_type: Optional[str] = None
    sex: Optional[str] = None
    healthy_volunteers: Optional[str] = None
    target_no_volunteers: LooseNumber = None
    actual_enrolled_volunteers: LooseNumber = None


class TrialTiming(_Section):
    start_date_estimated: Optional[str] = None
    trial_end_date_estimated: Optional[str] = None
    start_date_actual: Optional[str] = None
    trial_end_date_actual: Optional[str] = None
    enrollment_closed_actual: Optional[str] = None
    enrollment_closed_estimated: Optional[str] = None
    result_published_date_actual: Optional[str] = None
    result_published_date_estimated: Optional[str] = None


class TrialResult(_Section):
    trial_outcome: Optional[str] = None
    reference: Optional[str] = None
    trial_results: Optional[List[str]] = Field(default_factory=list)
    adverse_event_reported: Optional[str] = None
    adverse_event_type: Optional[str] = None
    treatment_for_adverse_events: Optional[str] = None
    results_available: YesNo = None
    endpoints_met: YesNo = None


class TrialSites(_Section):
    total: LooseNumber = None
    notes: Optional[str] = None


class TrialOther(_Section):
    data: Optional[str] = None


class TrialLog(_Section):
    trial_changes_log: Optional[str] = None
    trial_added_date: Optional[str] = None
    last_modified_date: Optional[str] = None
    last_modified_user: Optional[str] = None
    full_review_user: Optional[str] = None
    next_review_date: Optional[str] = None
    attachment: Optional[str] = None
    internal_note: Optional[str] = None


class TrialNote(_Section):
    date_type: Optional[str] = None
    notes: Optional[str] = None
    link: Optional[str] = None
    attachments: Optional[List[str]] = None


class TrialRecord(BaseModel):
    """
    One clinical trial as returned by the records API.

    Every section except ``overview`` is a zero-or-one element list;
    readers take index 0 and treat an empty list as "absent".
    """
    model_config = ConfigDict(extra="allow")

    trial_id: Optional[str] = None
    overview: TrialOverview = Field(default_factory=TrialOverview)
    outcomes: List[TrialOutcome] = Field(default_factory=list)
    criteria: List[TrialEligibility] = Field(default_factory=list)
    timing: List[TrialTiming] = Field(default_factory=list)
    results: List[TrialResult] = Field(default_factory=list)
    sites: List[TrialSites] = Field(default_factory=list)
    other: List[TrialOther] = Field(default_factory=list)
    logs: List[TrialLog] = Field(default_factory=list)
    notes: List[TrialNote] = Field(default_factory=list)


class DrugOverview(BaseModel):
    model_config = ConfigDict(extra="allow")

    drug_name: Optional[str] = None
    generic_name: Optional[str] = None
    other_name: Optional[str] = None


class DrugCatalogEntry(BaseModel):
    """A drug from the drug catalog; only its names are used for aliasing."""
    model_config = ConfigDict(extra="allow")

    drug_id: Optional[str] = None
    overview: DrugOverview = Field(default_factory=DrugOverview)

    def names(self) -> List[str]:
        """Non-empty, stripped name attributes of this drug."""
        raw = [self.overview.drug_name, self.overview.generic_name, self.overview.other_name]
        return [name.strip() for name in raw if name and name.strip()]
