from typing import Optional
from sqlalchemy.orm import Session
from hr_payroll.models.notification import Notification


class NotificationService:
    @staticmethod
    def create_notification(
        db: Session,
        employee_id: int,
        title: str,
        message: str,
        type: str = "info",
        link: Optional[str] = None
    ) -> Notification:
        """
        Internal utility for creating notifications.
        Joins the caller's transaction; the caller commits.
        """
        notification = Notification(
            employee_id=employee_id,
            title=title,
            message=message,
            type=type,
            link=link
        )
        db.add(notification)
        db.flush()
        return notification

    @staticmethod
    def notify_payroll_released(db: Session, employee_id: int, entry_id: int, period_label: str, net_pay: float):
        return NotificationService.create_notification(
            db,
            employee_id,
            "Payroll Released",
            f"Your payroll for {period_label} has been released. Net pay: {net_pay:,.2f}",
            type="success",
            link=f"/api/payroll/entries/{entry_id}/breakdown"
        )
