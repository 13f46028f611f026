# models/customer_profile.py
from sqlalchemy import Column, Integer, String, DateTime, func
from .base import Base


class CustomerProfile(Base):
     """
     Customer profile owned by the account-management side of the platform.

     During the identity migration a profile may carry both the legacy numeric
     id and the external provider id; storing the legacy id on the external
     profile is what links the two for ledger lookups.
     """
     __tablename__ = "customer_profiles"

     id = Column(Integer, primary_key=True, autoincrement=True)
     legacy_user_id = Column(Integer, unique=True, nullable=True, index=True)
     external_user_id = Column(String(255), unique=True, nullable=True, index=True)
     phone = Column(String(50), nullable=True, index=True)
     email = Column(String(255), nullable=True)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     def __repr__(self):
          return (
               f"<CustomerProfile(id={self.id}, legacy={self.legacy_user_id}, "
               f"external='{self.external_user_id}')>"
          )
