from copy import deepcopy
from datetime import date
import os
import sys

import pytest

# Ensure backend modules are importable when running tests directly.
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../")))

from rips_export.catalog import build_default_catalog
from rips_export.classification import Classifier
from rips_export.config import ProviderSettings
from rips_export.records import InMemoryRecordStore

REFERENCE_DATE = date(2025, 6, 1)

SAMPLE_COLLECTIONS = {
    "pacientes": [
        {
            "_id": "p-child",
            "nombres": "Sofía",
            "apellidos": "Gómez Ruiz",
            "tipoDocumento": "CC",
            "numeroDocumento": "1067000001",
            "fechaNacimiento": "2020-01-15",
            "genero": "Femenino",
            "regimenAfiliacion": "Subsidiado",
            "codMunicipioResidencia": "23001",
            "direccion": "Calle 41 # 10-20",
            "celular": "3001234567",
        },
        {
            "_id": "p-adult",
            "nombres": "Laura",
            "apellidos": "Pérez",
            "cedula": "52000111",
            "fechaNacimiento": "1992-03-10T00:00:00Z",
            "genero": "Femenino",
            "regimenAfiliacion": "Contributivo",
            "lineaAtencion": "adultos",
        },
        {
            "_id": "p-idle",
            "nombres": "Mateo",
            "registroCivil": "1067000099",
            "fechaNacimiento": "2023-08-01",
            "genero": "Masculino",
        },
    ],
    "valoraciones": [
        {
            "_id": "v-child",
            "paciente": "p-child",
            "fecha": "2025-05-10T14:35:59Z",
            "createdAt": "2025-05-10T14:40:00Z",
            "motivoDeConsulta": "Retraso en el desarrollo psicomotor",
            "profesionalTratante": {
                "tipoDocumento": "CC",
                "numeroDocumento": "1067888999",
                "nombre": "Dayan Villegas",
            },
            "antecedentes": {
                "alergias": "Penicilina",
                "farmacologicos": "Ninguno",
                "patologicos": "Asma leve",
            },
            "familiares": "Madre con diabetes",
            "diagnosticoFisioterapeutico": "Retraso del desarrollo psicomotor",
            "planTratamiento": "Estimulación temprana dos veces por semana",
        },
        {
            "_id": "v-adult",
            "paciente": "p-adult",
            "fecha": "2025-05-20",
            "motivoConsulta": "Control prenatal semana 20",
            "vrServicio": 95000,
            "antecedentes": {"alergias": "Niega"},
        },
    ],
    "clases": [
        {
            "_id": "c-pelvic",
            "titulo": "Terapia Grupal de Piso Pélvico",
            "fecha": "2025-05-15T09:00:00Z",
            "ninos": [{"paciente": "p-adult", "asistio": True}],
        },
        {
            "_id": "c-april",
            "titulo": "Clase de estimulación sensorial",
            "fecha": "2025-04-01",
            "ninos": [{"paciente": "p-child", "asistio": True}],
        },
    ],
    "sesionesPerinatales": [
        {
            "_id": "s-prep",
            "paciente": "p-adult",
            "fecha": "2025-05-25T10:00:00",
            "nombreSesion": "Preparación para el parto - sesión 3",
            "profesional": {"tipoDocumento": "CC", "numeroDocumento": "1067888999", "nombre": "Dayan Villegas"},
        }
    ],
    "codigosCUPS": [],
}


@pytest.fixture
def sample_collections():
    return deepcopy(SAMPLE_COLLECTIONS)


@pytest.fixture
def memory_store(sample_collections):
    return InMemoryRecordStore(sample_collections)


@pytest.fixture
def catalog():
    return build_default_catalog()


@pytest.fixture
def services(memory_store, catalog):
    return {
        "catalog": catalog,
        "classifier": Classifier(catalog),
        "store": memory_store,
        "provider": ProviderSettings(),
    }
