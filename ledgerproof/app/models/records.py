"""
Typed views of revision data, selected by table name.

A revision's ``data`` is hashed exactly as received, so the raw dict stays the
source of truth. These models give callers a typed view of it once the table
the revision belongs to is known (for example from a stream record's
tableInfo).
"""

from typing import Any, Dict, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ledgerproof.app.errors import UnsupportedVariantError
from ledgerproof.app.models.journal import malformed


class RecordData(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")


class Person(RecordData):
    first_name: str = Field(..., alias="FirstName")
    last_name: str = Field(..., alias="LastName")
    dob: str = Field(..., alias="DOB")
    gov_id: str = Field(..., alias="GovId")
    gov_id_type: str = Field(..., alias="GovIdType")
    address: str = Field(..., alias="Address")


class Vehicle(RecordData):
    vin: str = Field(..., alias="VIN")
    type: str = Field(..., alias="Type")
    year: int = Field(..., alias="Year")
    make: str = Field(..., alias="Make")
    model: str = Field(..., alias="Model")
    color: str = Field(..., alias="Color")


class Owner(RecordData):
    person_id: str = Field(..., alias="PersonId")


class Owners(RecordData):
    primary_owner: Owner = Field(..., alias="PrimaryOwner")
    secondary_owners: Tuple[Owner, ...] = Field(default=(), alias="SecondaryOwners")


class VehicleRegistration(RecordData):
    vin: str = Field(..., alias="VIN")
    license_plate_number: str = Field(..., alias="LicensePlateNumber")
    state: str = Field(..., alias="State")
    city: str = Field(..., alias="City")
    pending_penalty_ticket_amount: Optional[float] = Field(default=None, alias="PendingPenaltyTicketAmount")
    valid_from_date: str = Field(..., alias="ValidFromDate")
    valid_to_date: str = Field(..., alias="ValidToDate")
    owners: Owners = Field(..., alias="Owners")


class DriversLicense(RecordData):
    person_id: str = Field(..., alias="PersonId")
    license_number: str = Field(..., alias="LicenseNumber")
    license_type: str = Field(..., alias="LicenseType")
    valid_from_date: str = Field(..., alias="ValidFromDate")
    valid_to_date: str = Field(..., alias="ValidToDate")


RevisionData = Union[Person, Vehicle, VehicleRegistration, DriversLicense]

TABLE_MODELS: Dict[str, Type[RecordData]] = {
    "Person": Person,
    "Vehicle": Vehicle,
    "VehicleRegistration": VehicleRegistration,
    "DriversLicense": DriversLicense,
}


def decode_revision_data(table_name: str, data: Dict[str, Any]) -> RevisionData:
    """
    Decode revision data into the model registered for ``table_name``.

    Raises:
        UnsupportedVariantError: If no model is registered for the table
        MalformedInputError: If the data does not fit the table's model
    """
    model = TABLE_MODELS.get(table_name)
    if model is None:
        raise UnsupportedVariantError("table", table_name)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise malformed(exc, f"{table_name} revision data") from exc
