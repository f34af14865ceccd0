"""Nondh (amendment) models: headers, details and owner relations"""
from sqlalchemy import Column, Integer, String, DateTime, Date, Text, JSON, ForeignKey, Enum, Boolean, Float, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime
from lrms.database import Base
import enum
import uuid


class NondhType(str, enum.Enum):
    """Legal nature of a nondh"""
    KABJEDAAR = "Kabjedaar"
    EKATRIKARAN = "Ekatrikaran"
    VARSAI = "Varsai"
    HAYATI_MA_HAKH_DAKHAL = "Hayati_ma_hakh_dakhal"
    HAKKAMI = "Hakkami"
    VECHAND = "Vechand"
    DURASTI = "Durasti"
    PROMULGATION = "Promulgation"
    HUKAM = "Hukam"
    VEHCHANI = "Vehchani"
    BOJO = "Bojo"
    OTHER = "Other"


class TenureType(str, enum.Enum):
    """Tenure under which the land is held"""
    NAVI = "Navi"
    JUNI = "Juni"
    KHETI_KHETI_MA_JUNI = "Kheti_Kheti_ma_Juni"
    NA = "NA"
    BIN_KHETI_PRE_PATRA = "Bin_Kheti_Pre_Patra"
    PRATI_BANDHIT_SATTA_PRAKAR = "Prati_bandhit_satta_prakar"


class NondhStatus(str, enum.Enum):
    """Recorded status of a nondh detail"""
    VALID = "valid"
    INVALID = "invalid"
    NULLIFIED = "nullified"


class SurveyNumberType(str, enum.Enum):
    """Kind of survey number a reference points at"""
    S_NO = "s_no"
    BLOCK_NO = "block_no"
    RE_SURVEY_NO = "re_survey_no"


def generate_nondh_id() -> str:
    return str(uuid.uuid4())


class Nondh(Base):
    """A numbered amendment entry against a land record"""
    __tablename__ = "nondhs"

    id = Column(String(36), primary_key=True, default=generate_nondh_id)
    land_record_id = Column(Integer, ForeignKey("land_records.id"), nullable=False, index=True)

    # Human-assigned, may contain separators such as "10-35"
    number = Column(String(50), nullable=False, index=True)

    s_no_type = Column(String(20), default=SurveyNumberType.S_NO.value)
    affected_s_nos = Column(JSON, default=list)  # [{"number": ..., "type": ...}]

    # Scanned nondh document
    doc_upload_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    land_record = relationship("LandRecord", back_populates="nondhs")
    details = relationship("NondhDetail", back_populates="nondh", cascade="all, delete-orphan")


class NondhDetail(Base):
    """Substantive legal content of a nondh"""
    __tablename__ = "nondh_details"

    id = Column(Integer, primary_key=True, index=True)
    nondh_id = Column(String(36), ForeignKey("nondhs.id"), nullable=False, index=True)

    type = Column(String(50), nullable=False)
    date = Column(Date, nullable=True)
    vigat = Column(Text, nullable=True)
    tenure = Column(String(50), default=TenureType.NAVI.value)

    # Status as recorded by the uploader, not the resolved validity
    status = Column(Enum(NondhStatus), default=NondhStatus.VALID, nullable=False)
    invalid_reason = Column(Text, nullable=True)
    show_in_output = Column(Boolean, default=True)

    old_owner = Column(String(255), nullable=True)

    # Sale (Vechand)
    sd_date = Column(Date, nullable=True)
    amount = Column(Numeric(15, 2), nullable=True)

    # Order (Hukam)
    hukam_date = Column(Date, nullable=True)
    hukam_type = Column(String(50), nullable=True)
    restraining_order = Column(String(10), nullable=True)
    ganot = Column(String(50), nullable=True)

    # Nondhs this record explicitly invalidates: [{"nondhNo", "status", "invalidReason"}]
    affected_nondh_details = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    nondh = relationship("Nondh", back_populates="details")
    owner_relations = relationship("NondhOwnerRelation", back_populates="nondh_detail", cascade="all, delete-orphan")


class NondhOwnerRelation(Base):
    """One owner's area share under a nondh detail"""
    __tablename__ = "nondh_owner_relations"

    id = Column(Integer, primary_key=True, index=True)
    nondh_detail_id = Column(Integer, ForeignKey("nondh_details.id"), nullable=False, index=True)

    owner_name = Column(String(255), nullable=False)
    square_meters = Column(Float, default=0)
    area_unit = Column(String(10), default="sq_m")

    survey_number = Column(String(50), nullable=True)
    survey_number_type = Column(String(20), nullable=True)

    # Copied from the resolved validity chain, never set by the uploader
    is_valid = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    nondh_detail = relationship("NondhDetail", back_populates="owner_relations")
