"""
LibreLink Up API models.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

LIBRE_TIMESTAMP_FORMAT = "%m/%d/%Y %I:%M:%S %p"


class LibreGlucoseItem(BaseModel):
    """
    Model for a single LibreLink Up glucose measurement.
    """
    model_config = ConfigDict(extra="ignore")

    FactoryTimestamp: Optional[str] = Field(default=None, description="Sensor timestamp in UTC")
    Timestamp: str = Field(description="Sensor timestamp in local time")
    ValueInMgPerDl: float = Field(description="Glucose in mg/dL")
    TrendArrow: Optional[int] = Field(default=None, description="Trend arrow code, 1 (falling) to 5 (rising)")
    MeasurementColor: Optional[int] = Field(default=None, description="Measurement color code")
    isHigh: bool = Field(default=False, description="Above the account's alarm high")
    isLow: bool = Field(default=False, description="Below the account's alarm low")

    def local_time(self) -> datetime:
        return datetime.strptime(self.Timestamp, LIBRE_TIMESTAMP_FORMAT)


class LibreSensor(BaseModel):
    """
    Model for LibreLink Up sensor metadata.
    """
    model_config = ConfigDict(extra="ignore")

    deviceId: Optional[str] = Field(default=None, description="Device ID")
    sn: Optional[str] = Field(default=None, description="Serial number")
    a: Optional[int] = Field(default=None, description="Activation time, unix seconds")
    pt: Optional[int] = Field(default=None, description="Product type")


class LibreActiveSensor(BaseModel):
    """
    Model for an entry of the graph endpoint's activeSensors list.
    """
    model_config = ConfigDict(extra="ignore")

    sensor: Optional[LibreSensor] = Field(default=None, description="Sensor")


class LibreConnection(BaseModel):
    """
    Model for a LibreLink Up patient connection.
    """
    model_config = ConfigDict(extra="ignore")

    patientId: str = Field(description="Patient ID")
    firstName: Optional[str] = Field(default=None, description="First name")
    lastName: Optional[str] = Field(default=None, description="Last name")
    glucoseMeasurement: Optional[LibreGlucoseItem] = Field(default=None, description="Latest measurement")
    sensor: Optional[LibreSensor] = Field(default=None, description="Current sensor")


class LibreGraphData(BaseModel):
    """
    Model for the graph endpoint payload.
    """
    model_config = ConfigDict(extra="ignore")

    connection: Optional[LibreConnection] = Field(default=None, description="Connection")
    activeSensors: List[LibreActiveSensor] = Field(default_factory=list, description="Active sensors")
    graphData: List[LibreGlucoseItem] = Field(default_factory=list, description="Historical measurements")


class LibreUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(description="User ID")


class LibreAuthTicket(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: str = Field(description="Bearer token")
    expires: Optional[int] = Field(default=None, description="Expiry, unix seconds")


class LibreLoginData(BaseModel):
    """
    Model for the login payload, either an auth ticket or a region redirect.
    """
    model_config = ConfigDict(extra="ignore")

    redirect: bool = Field(default=False, description="Account lives in another region")
    region: Optional[str] = Field(default=None, description="Region to redirect to")
    user: Optional[LibreUser] = Field(default=None, description="Authenticated user")
    authTicket: Optional[LibreAuthTicket] = Field(default=None, description="Auth ticket")


# Request models
class LibreLoginRequest(BaseModel):
    """
    Request model for the login API.
    """
    email: str = Field(description="Account email")
    password: str = Field(description="Account password")
