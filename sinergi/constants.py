"""Stored enum codes shared by services and routes."""

# Roles
SUPERADMIN = "superadmin"
HOTEL_MANAGER = "hotel_manager"
SUPERVISOR = "supervisor"
STAFF = "staff"

ROLES = (SUPERADMIN, HOTEL_MANAGER, SUPERVISOR, STAFF)

LOCATION_TYPES = ("kamar", "fasilitas_umum", "office", "gudang")

# Maintenance
LOCATION_RENOVATION = "renovasi_lokasi"
ASSET_REPAIR = "perbaikan_aset"

PENDING_APPROVAL = "pending_approval"
APPROVED = "approved"
REJECTED = "rejected"
