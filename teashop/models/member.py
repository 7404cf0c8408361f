"""
Member model.
"""
from datetime import datetime
from decimal import Decimal
from ..extensions import db


class Member(db.Model):
    """
    Storefront loyalty member.

    Owned by the account subsystem; the loyalty rules engine only reads
    total_spent and writes member_level through the upgrade check.
    """
    __tablename__ = 'members'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255))
    phone = db.Column(db.String(50), unique=True)

    # Loyalty state
    member_level = db.Column(db.String(20), nullable=False, default='normal')  # normal, silver, gold, diamond
    total_spent = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    points_balance = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Member {self.id} {self.member_level}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'member_level': self.member_level,
            'total_spent': float(self.total_spent or 0),
            'points_balance': self.points_balance,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
