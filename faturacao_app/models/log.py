# faturacao_app/models/log.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class SystemLog(db.Model):
    __tablename__ = "system_logs"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, index=True, nullable=True)
    level = db.Column(db.String(10), nullable=False, default="info")   # debug, info, warn, error, audit
    action = db.Column(db.String(40), nullable=False, index=True)      # api_call, error, security_event, ...
    resource_type = db.Column(db.String(40))
    resource_id = db.Column(db.String(64))
    message = db.Column(db.String(500), nullable=False)
    details = db.Column(db.JSON, default=dict)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(200))
    endpoint = db.Column(db.String(100))
    method = db.Column(db.String(10))
    duration_ms = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
