"""Land record (parcel) model with its year slabs and farmer registries"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Float, JSON, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from lrms.database import Base


class LandRecord(Base):
    """A land parcel identified by its administrative location and survey number"""
    __tablename__ = "land_records"

    id = Column(Integer, primary_key=True, index=True)

    # Location
    district = Column(String(100), nullable=False)
    taluka = Column(String(100), nullable=False)
    village = Column(String(100), nullable=False)

    # Survey identification
    block_no = Column(String(50), nullable=True)
    re_survey_no = Column(String(50), nullable=True)
    s_no_type = Column(String(20), nullable=False)  # block_no, re_survey_no
    s_no = Column(String(50), nullable=False)

    # Area, always normalized to square meters
    area_value = Column(Float, default=0)
    area_unit = Column(String(10), default="sq_m")

    is_promulgation = Column(Boolean, default=False)
    json_uploaded = Column(Boolean, default=False)

    # Wizard progress for follow-up edits
    status = Column(String(20), default="draft")
    current_step = Column(Integer, default=1)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    nondhs = relationship("Nondh", back_populates="land_record", cascade="all, delete-orphan")
    year_slabs = relationship("YearSlab", back_populates="land_record", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_land_record_location", "district", "taluka", "village"),
        Index("ix_land_record_s_no", "village", "s_no"),
    )


class YearSlab(Base):
    """A span of years during which the parcel was recorded under one survey number"""
    __tablename__ = "year_slabs"

    id = Column(Integer, primary_key=True, index=True)
    land_record_id = Column(Integer, ForeignKey("land_records.id"), nullable=False, index=True)

    start_year = Column(Integer, nullable=False)
    end_year = Column(Integer, nullable=False)

    s_no = Column(String(50), nullable=True)
    s_no_type = Column(String(20), nullable=True)
    area_value = Column(Float, default=0)
    area_unit = Column(String(10), default="sq_m")

    # Subdivided slabs carry their own entries instead of a single survey number
    paiky = Column(Boolean, default=False)
    paiky_entries = Column(JSON, default=list)
    ekatrikaran = Column(Boolean, default=False)
    ekatrikaran_entries = Column(JSON, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    land_record = relationship("LandRecord", back_populates="year_slabs")
    panipatraks = relationship("Panipatrak", back_populates="year_slab", cascade="all, delete-orphan")


class Panipatrak(Base):
    """Farmer registry for a single year"""
    __tablename__ = "panipatraks"

    id = Column(Integer, primary_key=True, index=True)
    land_record_id = Column(Integer, ForeignKey("land_records.id"), nullable=False, index=True)
    year_slab_id = Column(Integer, ForeignKey("year_slabs.id"), nullable=False)

    year = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    year_slab = relationship("YearSlab", back_populates="panipatraks")
    farmers = relationship("PanipatrakFarmer", back_populates="panipatrak", cascade="all, delete-orphan")


class PanipatrakFarmer(Base):
    """One farmer listed on a panipatrak"""
    __tablename__ = "panipatrak_farmers"

    id = Column(Integer, primary_key=True, index=True)
    panipatrak_id = Column(Integer, ForeignKey("panipatraks.id"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    area_value = Column(Float, default=0)
    area_unit = Column(String(10), default="sq_m")

    # At most one of these is set
    paiky_number = Column(Integer, nullable=True)
    ekatrikaran_number = Column(Integer, nullable=True)

    # Relationships
    panipatrak = relationship("Panipatrak", back_populates="farmers")
