# app/core/application.py
"""
Shape of the compensation application document, shared by the API and the
draft sync client.
"""
import copy
from typing import Any, Dict

APPLICATION_SECTIONS = (
    "victim",
    "applicant",
    "contact",
    "crime",
    "court",
    "protectionAndCivil",
    "losses",
    "medical",
    "employment",
    "funeral",
    "certification",
)

LOSS_CATEGORIES = (
    "medicalHospital", "dental", "transportation", "accessibilityCosts",
    "crimeSceneCleanup", "counseling", "relocationCosts", "temporaryLodging",
    "tattooRemoval", "lossOfEarnings", "tuition", "replacementServiceLoss",
    "locks", "windows", "clothing", "bedding", "prostheticAppliances",
    "eyeglassesContacts", "hearingAids", "replacementCosts", "lossOfSupport",
    "towingStorage", "funeralBurial", "lossOfFutureEarnings", "legalFees",
    "doors", "headstone",
)

_EMPTY_APPLICATION: Dict[str, Any] = {
    "victim": {
        "firstName": "",
        "lastName": "",
        "dateOfBirth": "",
        "streetAddress": "",
        "city": "",
        "state": "IL",
        "zip": "",
        "email": "",
        "cellPhone": "",
        "alternatePhone": "",
        "workPhone": "",
        "genderIdentity": "",
        "maritalStatus": "",
        "race": "",
        "ethnicity": "",
        "hasDisability": False,
        "disabilityType": None,
    },
    "applicant": {"isSameAsVictim": True, "seekingOwnExpenses": False},
    "contact": {"prefersEnglish": True, "workingWithAdvocate": False},
    "crime": {
        "policeReportNumber": "",
        "dateOfCrime": "",
        "dateReported": "",
        "crimeAddress": "",
        "crimeCity": "",
        "crimeCounty": "",
        "reportingAgency": "",
        "crimeDescription": "",
        "injuryDescription": "",
        "offenderKnown": False,
    },
    "court": {},
    "protectionAndCivil": {},
    "losses": {key: False for key in LOSS_CATEGORIES},
    "medical": {"providers": []},
    "employment": {"isApplyingForLossOfEarnings": False, "employmentHistory": []},
    "funeral": {"payments": [], "cemeteryPayments": []},
    "certification": {},
}


def empty_application(state_code: str = "IL") -> Dict[str, Any]:
    """Fresh copy of the blank application for a program."""
    application = copy.deepcopy(_EMPTY_APPLICATION)
    application["victim"]["state"] = state_code
    return application
