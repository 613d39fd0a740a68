from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey, Date, Numeric, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sinergi.database import Base


class Property(Base):
    """A managed site (one hotel). Scopes locations, assets and maintenance."""
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    locations = relationship("Location", back_populates="property", cascade="all, delete-orphan")
    assets = relationship("Asset", back_populates="property", cascade="all, delete-orphan")
    maintenance_orders = relationship("MaintenanceOrder", back_populates="property", cascade="all, delete-orphan")
    assignments = relationship("PropertyAssignment", back_populates="property", cascade="all, delete-orphan")


class Location(Base):
    """Named place within a property"""
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # kamar, fasilitas_umum, office, gudang
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    property = relationship("Property", back_populates="locations")
    assets = relationship("Asset", back_populates="location")


class Asset(Base):
    """Trackable physical item, fixed to a location or movable"""
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
    is_movable = Column(Boolean, default=False)

    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    brand = Column(String, nullable=True)
    series = Column(String, nullable=True)
    purchase_price = Column(Numeric(14, 2), nullable=True)

    condition = Column(String, default="baik")  # baik, cukup, perlu_perbaikan, rusak
    status = Column(String, default="aktif")  # aktif, dalam_perbaikan, tidak_aktif, dihapuskan

    last_maintenance_date = Column(Date, nullable=True)
    next_maintenance_date = Column(Date, nullable=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    property = relationship("Property", back_populates="assets")
    location = relationship("Location", back_populates="assets")


class MaintenanceOrder(Base):
    """Work order for repairing an asset or renovating a location"""
    __tablename__ = "maintenance"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False, index=True)  # Assigned once at creation
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(String, nullable=False)  # renovasi_lokasi, perbaikan_aset
    asset_id = Column(Integer, ForeignKey("assets.id", ondelete="RESTRICT"), nullable=True)  # Required while type is perbaikan_aset
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="RESTRICT"), nullable=True)  # Required while type is renovasi_lokasi

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    total_cost = Column(Numeric(14, 2), default=0)
    evidence_urls = Column(JSON, nullable=True)  # Ordered list of public image URLs

    # Operational lifecycle
    status = Column(String, default="pending")  # pending, in_progress, completed, cancelled
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    # Approval workflow
    approval_status = Column(String, nullable=False, default="pending_approval")  # pending_approval, approved, rejected
    approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    property = relationship("Property", back_populates="maintenance_orders")
    asset = relationship("Asset")
    location = relationship("Location")
    approver = relationship("User", foreign_keys=[approved_by])
    creator = relationship("User", foreign_keys=[created_by])


class User(Base):
    """Authentication record. The login code is the credential."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)  # Stored lower-case
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())

    # Relationships
    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    role_entry = relationship("UserRole", back_populates="user", uselist=False, cascade="all, delete-orphan")
    assignments = relationship("PropertyAssignment", back_populates="user", cascade="all, delete-orphan")


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    login_code = Column(String, nullable=False)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="profile")


class UserRole(Base):
    """Exactly one role per user"""
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    role = Column(String, nullable=False)  # superadmin, hotel_manager, supervisor, staff

    user = relationship("User", back_populates="role_entry")


class PropertyAssignment(Base):
    """Grants a non-superadmin user access to a property"""
    __tablename__ = "property_assignments"
    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_property_assignment"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_at = Column(DateTime, default=func.now())

    user = relationship("User", back_populates="assignments")
    property = relationship("Property", back_populates="assignments")


class CodeSequence(Base):
    """Last number handed out per code prefix; never decreases"""
    __tablename__ = "code_sequences"

    prefix = Column(String, primary_key=True)  # e.g. MT-2025-
    last_value = Column(Integer, nullable=False, default=0)
