"""Tax-lot portfolio of S&P 500 shares and one-year treasuries."""

from dataclasses import dataclass
from typing import NamedTuple

from mortgage_invest_sim.errors import SimulationError
from mortgage_invest_sim.history import HistoricalData
from mortgage_invest_sim.month_year import MonthYear, month_difference
from mortgage_invest_sim.params import to_cents

QUARTER_END_MONTHS = (3, 6, 9, 12)
DIVIDEND_AVERAGE_MONTHS = 3
BOND_TERM_YEARS = 1

# Rebalance only when the split drifts more than this from target...
REBALANCE_DRIFT_THRESHOLD = 0.01
# ...and the trade would move at least this many dollars.
REBALANCE_MIN_TRADE = 1000


@dataclass(eq=False)
class StockLot:
    """Fractional S&P 500 shares bought at one price."""

    shares: float
    basis_price: float

    @property
    def cost_basis(self) -> float:
        return self.shares * self.basis_price

    def value(self, price: float) -> float:
        return self.shares * price

    def __str__(self) -> str:
        return f"{self.shares:,.2f} shares @ ${self.basis_price:,.2f}"


@dataclass(eq=False)
class BondLot:
    """A discount treasury redeemed at par on maturity."""

    par: float
    purchase: float
    initial_rate: float
    maturity: MonthYear

    def __post_init__(self):
        if self.par <= self.purchase:
            raise SimulationError(f"bond par ${self.par:,.2f} must exceed purchase ${self.purchase:,.2f}")

    def is_matured(self, now: MonthYear) -> bool:
        return now >= self.maturity

    def face_value(self, now: MonthYear, market_rate: float) -> float:
        """Par at maturity, otherwise par discounted for the months remaining."""
        if self.is_matured(now):
            return self.par
        months = month_difference(self.maturity, now)
        return self.par * (1 - market_rate / 12 * months / 12)

    def __str__(self) -> str:
        return (
            f"${self.par:,.0f} bond maturing {self.maturity}; "
            f"${self.purchase:,.0f} price with {self.initial_rate:.2%} interest"
        )


class Sale(NamedTuple):
    """Cash raised and taxable income realized by a sale or redemption."""

    proceeds: float = 0.0
    gain: float = 0.0

    def __add__(self, other: "Sale") -> "Sale":
        return Sale(self.proceeds + other.proceeds, self.gain + other.gain)


class RebalancePlan(NamedTuple):
    bond_value: float
    stock_value: float
    target_bond: float
    target_stock: float


class Portfolio:
    """Open lots. Cash and taxes are owned by the caller."""

    def __init__(self, history: HistoricalData):
        self.history = history
        self.stocks: list[StockLot] = []
        self.bonds: list[BondLot] = []

    def buy_stocks(self, amount: float, now: MonthYear) -> StockLot:
        price = self.history.sp500_price(now)
        lot = StockLot(shares=amount / price, basis_price=price)
        self.stocks.append(lot)
        return lot

    def buy_bonds(self, amount: float, now: MonthYear) -> BondLot | None:
        """Buy a one-year treasury; None when the market rate is not positive."""
        rate = self.history.treasury_rate(now)
        if rate <= 0:
            return None
        lot = BondLot(
            par=amount / (1 - rate / 12),
            purchase=amount,
            initial_rate=rate,
            maturity=now.add_years(BOND_TERM_YEARS),
        )
        self.bonds.append(lot)
        return lot

    def bond_face_value(self, bond: BondLot, now: MonthYear) -> float:
        if bond.is_matured(now):
            return bond.par
        return bond.face_value(now, self.history.treasury_rate(now))

    def stock_value(self, now: MonthYear) -> float:
        if not self.stocks:
            return 0.0
        price = self.history.sp500_price(now)
        return to_cents(sum(lot.value(price) for lot in self.stocks))

    def bond_value(self, now: MonthYear) -> float:
        return to_cents(sum(self.bond_face_value(bond, now) for bond in self.bonds))

    def value(self, now: MonthYear) -> float:
        return to_cents(self.stock_value(now) + self.bond_value(now))

    def quarterly_dividend_yield(self, now: MonthYear) -> float | None:
        """Average annual yield over the quarter ending now; None outside quarter ends."""
        if now.month not in QUARTER_END_MONTHS:
            return None
        yields = [self.history.sp500_dividend(now.add_months(-i)) for i in range(DIVIDEND_AVERAGE_MONTHS)]
        return sum(yields) / DIVIDEND_AVERAGE_MONTHS

    def dividends(self, now: MonthYear) -> list[float]:
        """Quarter's dividend for each stock lot."""
        annual_yield = self.quarterly_dividend_yield(now)
        if annual_yield is None or not self.stocks:
            return []
        price = self.history.sp500_price(now)
        return [to_cents(annual_yield * 3 / 12 * lot.value(price)) for lot in self.stocks]

    def redeem_matured(self, now: MonthYear) -> list[Sale]:
        """Redeem matured bonds at par; the discount is treasury interest."""
        matured = [bond for bond in self.bonds if bond.is_matured(now)]
        sales = []
        for bond in matured:
            self.bonds.remove(bond)
            sales.append(Sale(to_cents(bond.par), bond.par - bond.purchase))
        return sales

    def _sell_bond(self, bond: BondLot, amount: float, now: MonthYear) -> Sale:
        face = self.bond_face_value(bond, now)
        if face <= amount:
            self.bonds.remove(bond)
            return Sale(to_cents(face), face - bond.purchase)

        fraction = amount / face
        gain = (face - bond.purchase) * fraction
        bond.par *= 1 - fraction
        bond.purchase *= 1 - fraction
        return Sale(to_cents(amount), gain)

    def sell_bonds(self, amount: float, now: MonthYear) -> Sale:
        """Sell bonds worth amount in purchase order."""
        total = Sale()
        amount = to_cents(amount)
        while amount > 0 and self.bonds:
            sale = self._sell_bond(self.bonds[0], amount, now)
            total += sale
            amount = to_cents(amount - sale.proceeds)
        return total

    def _sell_stock(self, lot: StockLot, amount: float, price: float) -> Sale:
        value = lot.value(price)
        if value <= amount:
            self.stocks.remove(lot)
            return Sale(to_cents(value), value - lot.cost_basis)

        shares = amount / price
        lot.shares -= shares
        return Sale(to_cents(amount), shares * (price - lot.basis_price))

    def sell_stocks(self, amount: float, now: MonthYear) -> Sale:
        """Sell stocks worth amount, highest basis first to minimize the realized gain."""
        total = Sale()
        if not self.stocks:
            return total
        price = self.history.sp500_price(now)
        amount = to_cents(amount)
        while amount > 0 and self.stocks:
            lot = max(self.stocks, key=lambda s: s.basis_price)
            sale = self._sell_stock(lot, amount, price)
            total += sale
            amount = to_cents(amount - sale.proceeds)
        return total

    def liquidate_bonds(self, now: MonthYear) -> Sale:
        """Redeem or sell every bond at its face value."""
        total = Sale()
        for bond in list(self.bonds):
            face = self.bond_face_value(bond, now)
            total += Sale(to_cents(face), face - bond.purchase)
        self.bonds.clear()
        return total

    def after_tax_value(self, now: MonthYear, treasury_tax_rate: float, capital_gains_tax_rate: float) -> float:
        """Cash raised by selling everything now, net of tax on the gains."""
        total = 0.0
        for bond in self.bonds:
            face = self.bond_face_value(bond, now)
            total += face - max(face - bond.purchase, 0) * treasury_tax_rate
        if self.stocks:
            price = self.history.sp500_price(now)
            for lot in self.stocks:
                value = lot.value(price)
                total += value - max(value - lot.cost_basis, 0) * capital_gains_tax_rate
        return to_cents(total)

    def rebalance_plan(self, now: MonthYear, stock_percentage: float) -> RebalancePlan | None:
        """Target bond/stock values, or None when the drift or the trade is too small."""
        bond_value = self.bond_value(now)
        stock_value = self.stock_value(now)
        total = bond_value + stock_value
        if total <= 0:
            return None

        desired_stock = max(0.0, min(stock_percentage, 1.0))
        desired_bond = 1 - desired_stock
        if (abs(bond_value / total - desired_bond) <= REBALANCE_DRIFT_THRESHOLD
                and abs(stock_value / total - desired_stock) <= REBALANCE_DRIFT_THRESHOLD):
            return None

        target_bond = to_cents(desired_bond * total)
        target_stock = to_cents(desired_stock * total)
        if (abs(target_bond - bond_value) < REBALANCE_MIN_TRADE
                or abs(target_stock - stock_value) < REBALANCE_MIN_TRADE):
            return None
        return RebalancePlan(bond_value, stock_value, target_bond, target_stock)
