"""
SQLAlchemy Models for the tenant content tables

Mirrors the builder's production tables closely enough for the read path.
Column types stay portable (String ids, JSON) so the same models run on
PostgreSQL in production and SQLite in local development and tests.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text,
    ForeignKey, Index, JSON,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _uuid() -> str:
    return str(uuid4())


# =============================================================================
# TENANT TABLES
# =============================================================================

class StoreRow(Base):
    """Tenant account owning websites, funnels and course areas"""
    __tablename__ = "stores"

    id = Column(String(36), primary_key=True, default=_uuid)
    slug = Column(String(255), unique=True)
    name = Column(String(255))
    description = Column(Text)
    favicon_url = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class CustomDomainRow(Base):
    """Tenant custom hostnames (lifecycle owned by DNS provisioning)"""
    __tablename__ = "custom_domains"

    id = Column(String(36), primary_key=True, default=_uuid)
    domain = Column(String(255), nullable=False, unique=True)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False)
    is_verified = Column(Boolean, default=False)
    dns_configured = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_custom_domains_domain", "domain"),
    )


class DomainConnectionRow(Base):
    """Domain -> content bindings"""
    __tablename__ = "domain_connections"

    id = Column(String(36), primary_key=True, default=_uuid)
    domain_id = Column(String(36), ForeignKey("custom_domains.id"), nullable=False)
    content_type = Column(String(32), nullable=False)  # website | funnel | course_area
    content_id = Column(String(36), nullable=False)
    path = Column(String(512))
    is_homepage = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_domain_connections_domain", "domain_id"),
    )


# =============================================================================
# CONTENT TABLES
# =============================================================================

class WebsiteRow(Base):
    __tablename__ = "websites"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False)
    slug = Column(String(255), unique=True)
    name = Column(String(255))
    description = Column(Text)
    seo_title = Column(String(255))
    seo_description = Column(Text)
    og_image = Column(Text)
    seo_keywords = Column(JSON)
    meta_robots = Column(String(64))
    settings = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)


class WebsitePageRow(Base):
    __tablename__ = "website_pages"

    id = Column(String(36), primary_key=True, default=_uuid)
    website_id = Column(String(36), ForeignKey("websites.id"), nullable=False)
    slug = Column(String(255))
    title = Column(String(255))
    is_homepage = Column(Boolean, default=False)
    is_published = Column(Boolean, default=False)
    seo_title = Column(String(255))
    seo_description = Column(Text)
    og_image = Column(Text)
    social_image_url = Column(Text)
    seo_keywords = Column(JSON)
    canonical_url = Column(Text)
    meta_robots = Column(String(64))
    content = Column(JSON)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_website_pages_slug", "website_id", "slug"),
    )


class FunnelRow(Base):
    __tablename__ = "funnels"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False)
    name = Column(String(255))
    description = Column(Text)
    seo_title = Column(String(255))
    seo_description = Column(Text)
    og_image = Column(Text)
    seo_keywords = Column(JSON)
    meta_robots = Column(String(64))
    settings = Column(JSON, default=dict)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class FunnelStepRow(Base):
    __tablename__ = "funnel_steps"

    id = Column(String(36), primary_key=True, default=_uuid)
    funnel_id = Column(String(36), ForeignKey("funnels.id"), nullable=False)
    slug = Column(String(255))
    title = Column(String(255))
    step_order = Column(Integer, default=0)
    is_published = Column(Boolean, default=False)
    seo_title = Column(String(255))
    seo_description = Column(Text)
    og_image = Column(Text)
    seo_keywords = Column(JSON)
    canonical_url = Column(Text)
    meta_robots = Column(String(64))
    content = Column(JSON)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_funnel_steps_slug", "funnel_id", "slug"),
    )


class SeoPageRow(Base):
    """Platform marketing pages served on system domains"""
    __tablename__ = "seo_pages"

    id = Column(String(36), primary_key=True, default=_uuid)
    page_slug = Column(String(255), unique=True, nullable=False)
    title = Column(String(255))
    description = Column(Text)
    og_image = Column(Text)
    keywords = Column(JSON)
