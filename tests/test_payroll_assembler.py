import pytest
from datetime import date, datetime, timedelta

from hr_payroll.core.exceptions import ComputationError
from hr_payroll.schemas.attendance import AttendanceConfig
from hr_payroll.schemas.payroll import (
    AttendanceDayInput,
    EmployeePayrollInput,
    LoanInput,
    OverloadInput,
    StandingDeductionInput,
)
from hr_payroll.services.deduction_aggregator import aggregate, is_attendance_deduction
from hr_payroll.services.loan_amortizer import LoanPaymentStrategy
from hr_payroll.services.payroll_assembler import MISSING_SALARY_WARNING, assemble
from hr_payroll.services.period_resolver import PayPeriod

CONFIG = AttendanceConfig()
PERIOD = PayPeriod(start=date(2026, 6, 1), end=date(2026, 6, 15))
AFTER_PERIOD = datetime(2026, 6, 20, 12, 0)
LATE_DAY = date(2026, 6, 2)
ABSENT_DAY = date(2026, 6, 3)


def _present(day, time_in=(8, 30), time_out=(17, 30)):
    return AttendanceDayInput(
        day=day,
        status="PRESENT",
        time_in=datetime(day.year, day.month, day.day, *time_in),
        time_out=datetime(day.year, day.month, day.day, *time_out),
    )


def _golden_attendance():
    days = []
    current = PERIOD.start
    while current <= PERIOD.end:
        if current.weekday() < 5 and current != ABSENT_DAY:
            if current == LATE_DAY:
                days.append(_present(current, time_in=(9, 36), time_out=(18, 0)))
            else:
                days.append(_present(current))
        current += timedelta(days=1)
    return days


def _loan(**overrides):
    values = dict(
        id=1, amount=5000.0, monthly_payment_percent=10.0, balance=5000.0, status="ACTIVE",
        start_date=date(2026, 1, 1), end_date=date(2026, 12, 31), purpose="Salary loan",
    )
    values.update(overrides)
    return LoanInput(**values)


def golden_input(**overrides):
    values = dict(employee_id=1, basic_salary=20000.0, attendance=_golden_attendance(), loans=[_loan()])
    values.update(overrides)
    return EmployeePayrollInput(**values)


def test_golden_scenario():
    breakdown = assemble(golden_input(), PERIOD, AFTER_PERIOD, CONFIG, strategy=LoanPaymentStrategy.PERIOD_FACTOR)

    assert breakdown.working_days == 22
    assert breakdown.basic_salary == 10000.0
    assert breakdown.gross_pay == 10000.00
    assert breakdown.total_deductions == 1168.56
    assert breakdown.net_pay == 8831.44

    statuses = {i.day: i.status for i in breakdown.attendance_deduction_items}
    assert statuses == {LATE_DAY: "LATE", ABSENT_DAY: "ABSENT"}
    assert breakdown.total_attendance_deductions == pytest.approx(20000 / 22 + 300 * 20000 / 22 / 8 / 3600)
    assert [i.amount for i in breakdown.loan_payment_items] == [250.0]
    assert breakdown.loan_payment_items[0].remaining_balance == 4750.0


def test_golden_scenario_is_reproducible():
    first = assemble(golden_input(), PERIOD, AFTER_PERIOD, CONFIG)
    second = assemble(golden_input(), PERIOD, AFTER_PERIOD, CONFIG)
    assert first == second


def test_attendance_items_sum_to_total():
    data = golden_input(attendance=_golden_attendance()[:4])
    breakdown = assemble(data, PERIOD, AFTER_PERIOD, CONFIG)
    assert sum(i.amount for i in breakdown.attendance_deduction_items) == pytest.approx(
        breakdown.total_attendance_deductions
    )


def test_future_days_never_contribute():
    # Only June 1-3 have happened; June 3 is today and still open
    now = datetime(2026, 6, 3, 10, 0)
    attendance = [d for d in _golden_attendance() if d.day < ABSENT_DAY]
    breakdown = assemble(golden_input(attendance=attendance), PERIOD, now, CONFIG)
    assert breakdown.effective_end == ABSENT_DAY
    assert [i.day for i in breakdown.attendance_deduction_items] == [LATE_DAY]


def test_net_pay_never_negative():
    deductions = [StandingDeductionInput(
        id=1, name="Cash Advance", amount=50000.0, applied_at=datetime(2026, 6, 5, 9, 0)
    )]
    breakdown = assemble(golden_input(deductions=deductions), PERIOD, AFTER_PERIOD, CONFIG)
    assert breakdown.net_pay == 0.0
    assert breakdown.warnings


def test_missing_salary_degrades_to_zeroes():
    breakdown = assemble(golden_input(basic_salary=None), PERIOD, AFTER_PERIOD, CONFIG)
    assert breakdown.net_pay == 0.0
    assert breakdown.gross_pay == 0.0
    assert breakdown.warnings == [MISSING_SALARY_WARNING]


def test_overload_items_are_itemized_within_period():
    overload = [
        OverloadInput(id=1, type="BONUS", amount=1000.0, applied_at=datetime(2026, 6, 10, 9, 0)),
        OverloadInput(id=2, type="OVERTIME", amount=500.0, applied_at=datetime(2026, 6, 20, 9, 0)),
    ]
    breakdown = assemble(golden_input(overload=overload), PERIOD, AFTER_PERIOD, CONFIG)
    assert [i.id for i in breakdown.overload_items] == [1]
    assert breakdown.gross_pay == 11000.0


def test_standing_deduction_buckets():
    deductions = [
        StandingDeductionInput(id=1, name="SSS", amount=500.0, applied_at=datetime(2026, 1, 1), is_mandatory=True),
        StandingDeductionInput(id=2, name="Uniform", amount=300.0, applied_at=datetime(2026, 6, 5)),
        StandingDeductionInput(id=3, name="Uniform", amount=300.0, applied_at=datetime(2026, 5, 5)),
        StandingDeductionInput(id=4, name="Absence Deduction", amount=909.09, applied_at=datetime(2026, 6, 3)),
        StandingDeductionInput(id=5, name="Canteen", amount=100.0, applied_at=datetime(2026, 6, 5), is_active=False),
    ]
    result = aggregate(golden_input(deductions=deductions), PERIOD, AFTER_PERIOD, CONFIG, 22)
    assert [(i.id, i.is_mandatory) for i in result.standing_items] == [(1, True), (2, False)]
    assert result.total_standing_deductions == 800.0


def test_attendance_named_types_are_recognized():
    assert is_attendance_deduction("Late Arrival")
    assert is_attendance_deduction("tardiness")
    assert not is_attendance_deduction("SSS")


def test_only_active_overlapping_loans_are_charged():
    loans = [
        _loan(id=1),
        _loan(id=2, status="COMPLETED", balance=0.0),
        _loan(id=3, start_date=date(2026, 7, 1)),
        _loan(id=4, balance=100.0),
    ]
    result = aggregate(golden_input(loans=loans), PERIOD, AFTER_PERIOD, CONFIG, 22, LoanPaymentStrategy.PERIOD_FACTOR)
    assert [(i.loan_id, i.amount) for i in result.loan_items] == [(1, 250.0), (4, 100.0)]


def test_full_monthly_strategy_charges_whole_payment():
    breakdown = assemble(golden_input(), PERIOD, AFTER_PERIOD, CONFIG, strategy=LoanPaymentStrategy.FULL_MONTHLY)
    assert breakdown.total_loan_payments == 500.0
    assert breakdown.loan_payment_strategy == "full_monthly"


def test_non_finite_salary_is_a_computation_error():
    with pytest.raises(ComputationError):
        assemble(golden_input(basic_salary=float("inf")), PERIOD, AFTER_PERIOD, CONFIG)


def test_unpunched_days_cost_nothing_without_auto_mark_absent():
    manual = AttendanceConfig(auto_mark_absent=False)
    data = EmployeePayrollInput(employee_id=1, basic_salary=20000.0)

    breakdown = assemble(data, PERIOD, AFTER_PERIOD, manual)

    assert breakdown.attendance_deduction_items == []
    assert breakdown.net_pay == 10000.0


def test_golden_scenario_without_auto_mark_absent():
    manual = AttendanceConfig(auto_mark_absent=False)
    breakdown = assemble(golden_input(), PERIOD, AFTER_PERIOD, manual, strategy=LoanPaymentStrategy.PERIOD_FACTOR)

    assert [i.day for i in breakdown.attendance_deduction_items] == [LATE_DAY]
    assert breakdown.total_deductions == 259.47
    assert breakdown.net_pay == 9740.53


def test_stored_absence_is_charged_without_auto_mark_absent():
    manual = AttendanceConfig(auto_mark_absent=False)
    data = golden_input(attendance=[AttendanceDayInput(day=ABSENT_DAY, status="ABSENT")], loans=[])

    breakdown = assemble(data, PERIOD, AFTER_PERIOD, manual)

    assert [(i.day, i.status) for i in breakdown.attendance_deduction_items] == [(ABSENT_DAY, "ABSENT")]


def test_absences_start_on_employment_date():
    data = golden_input(attendance=[], loans=[], employed_from=date(2026, 6, 10))

    breakdown = assemble(data, PERIOD, AFTER_PERIOD, CONFIG)

    assert [i.day for i in breakdown.attendance_deduction_items] == [
        date(2026, 6, 10), date(2026, 6, 11), date(2026, 6, 12), date(2026, 6, 15),
    ]
    assert {i.status for i in breakdown.attendance_deduction_items} == {"ABSENT"}


def test_very_late_time_in_is_capped_at_half_a_day():
    long_day = AttendanceConfig(time_in_end="08:00", time_out_end="22:00", auto_mark_absent=False)
    late = AttendanceDayInput(day=LATE_DAY, status="PRESENT", time_in=datetime(2026, 6, 2, 20, 30))

    breakdown = assemble(golden_input(attendance=[late], loans=[]), PERIOD, AFTER_PERIOD, long_day)

    [item] = breakdown.attendance_deduction_items
    assert (item.day, item.status) == (LATE_DAY, "LATE")
    assert item.amount == pytest.approx(20000 / 22 * 0.5)


def test_net_pay_is_rounded_gross_minus_rounded_deductions():
    manual = AttendanceConfig(auto_mark_absent=False)
    deductions = [StandingDeductionInput(id=1, name="Canteen", amount=0.006, applied_at=datetime(2026, 6, 5, 9, 0))]
    data = EmployeePayrollInput(employee_id=1, basic_salary=20000.01, deductions=deductions)

    breakdown = assemble(data, PERIOD, AFTER_PERIOD, manual)

    assert breakdown.total_deductions == 0.01
    assert breakdown.net_pay == round(breakdown.gross_pay - breakdown.total_deductions, 2)
