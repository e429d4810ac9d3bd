"""Shared fixtures: sample FHIR documents in both wire formats."""

import json

import pytest

from fhir_codec.adapters import JSONCodec, XMLCodec
from fhir_codec.infrastructure.settings import CodecLimits

PATIENT_JSON = {
    "resourceType": "Patient",
    "id": "example",
    "text": {
        "status": "generated",
        "div": "<div xmlns=\"http://www.w3.org/1999/xhtml\"><p>Peter Chalmers</p></div>",
    },
    "active": True,
    "name": [
        {
            "use": "official",
            "family": "Chalmers",
            "given": ["Peter", "James"],
        }
    ],
    "gender": "male",
    "birthDate": "1974-12-25",
    "_birthDate": {
        "extension": [
            {
                "url": "http://hl7.org/fhir/StructureDefinition/patient-birthTime",
                "valueDateTime": "1974-12-25T14:35:45-05:00",
            }
        ]
    },
    "deceasedBoolean": False,
}

PATIENT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<Patient xmlns="http://hl7.org/fhir">
  <id value="example"/>
  <text>
    <status value="generated"/>
    <div xmlns="http://www.w3.org/1999/xhtml"><p>Peter Chalmers</p></div>
  </text>
  <active value="true"/>
  <name>
    <use value="official"/>
    <family value="Chalmers"/>
    <given value="Peter"/>
    <given value="James"/>
  </name>
  <gender value="male"/>
  <birthDate value="1974-12-25">
    <extension url="http://hl7.org/fhir/StructureDefinition/patient-birthTime">
      <valueDateTime value="1974-12-25T14:35:45-05:00"/>
    </extension>
  </birthDate>
  <deceasedBoolean value="false"/>
</Patient>
"""

OBSERVATION_JSON = (
    '{"resourceType":"Observation",'
    '"contained":[{"resourceType":"Patient","id":"p1","active":true}],'
    '"status":"final",'
    '"code":{"coding":[{"system":"http://loinc.org","code":"8867-4","display":"Heart rate"}]},'
    '"subject":{"reference":"#p1"},'
    '"effectiveDateTime":"2020-05-01T10:30:00Z",'
    '"valueQuantity":{"value":72.0,"unit":"beats/minute","system":"http://unitsofmeasure.org","code":"/min"}}'
)

BUNDLE_JSON = {
    "resourceType": "Bundle",
    "type": "collection",
    "entry": [
        {
            "fullUrl": "urn:uuid:61ebe359-bfdc-4613-8bf2-c5e300945f0a",
            "resource": {"resourceType": "Patient", "id": "p1"},
        },
        {
            "fullUrl": "urn:uuid:88f151c0-a954-468a-88bd-5ae15c08e059",
            "resource": {
                "resourceType": "Observation",
                "status": "final",
                "code": {"text": "Heart rate"},
                "valueInteger": 72,
            },
        },
    ],
}


@pytest.fixture
def json_codec():
    """Compact JSON codec."""
    return JSONCodec(indent=0)


@pytest.fixture
def xml_codec():
    """XML codec in traditional (defusedxml) mode."""
    return XMLCodec(streaming=False)


@pytest.fixture
def streaming_xml_codec():
    """XML codec forced into streaming (lxml iterparse) mode."""
    return XMLCodec(streaming=True)


@pytest.fixture
def strict_limits():
    """Tight limits for security tests."""
    return CodecLimits(
        max_document_size=64 * 1024,
        xml_max_events=200,
        xml_max_depth=8,
        xml_streaming_enabled=True,
        xml_streaming_threshold=0,
    )


@pytest.fixture
def patient_json_text():
    return json.dumps(PATIENT_JSON)


@pytest.fixture
def patient_xml_text():
    return PATIENT_XML


@pytest.fixture
def observation_json_text():
    return OBSERVATION_JSON


@pytest.fixture
def bundle_json_text():
    return json.dumps(BUNDLE_JSON)


@pytest.fixture
def patient(json_codec, patient_json_text):
    """Decoded sample Patient."""
    return json_codec.loads(patient_json_text)
