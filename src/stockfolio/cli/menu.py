"""
Interactive text menu over a Ledger.

Each command reads its own values, hands them to the ledger and prints the
outcome. A blank answer aborts the current command; a LedgerError is printed
and the menu carries on. Only end of input stops the loop.
"""
from __future__ import annotations

from typing import Callable, Optional

from .parsing import is_blank, parse_decimal, parse_int
from .render import EMPTY_MESSAGE, holdings_table, summary_report
from ..ledger.errors import InvalidInput, LedgerError
from ..ledger.ledger import Ledger, check_price
from ..ledger.model import Holding, REPRICE_ALL
from ..ledger.valuation import summarize
from ..metrics.ledger import set_portfolio_gauges
from ..storage.codec import DEFAULT_PORTFOLIO_FILE, load_ledger, save_ledger

MENU_TEXT = (
    "\n1) View  2) Buy  3) Sell  4) Update Prices\n"
    "5) Metrics  6) Save  7) Load  8) Help  0) Exit"
)

HELP_TEXT = """\
View           list holdings with market value and P/L%
Buy            add shares; buying a held symbol averages the buy price
Sell           remove shares; selling everything drops the holding
Update Prices  set the current price of one symbol, or ALL in turn
Metrics        total cost basis, market value, unrealized P/L, return
Save / Load    write or read {path}
Leave any prompt blank to cancel that command."""

ReadLine = Callable[[str], Optional[str]]


class InputClosed(Exception):
    """End of input reached while a command was still reading values."""


def stdin_reader(prompt: str) -> Optional[str]:
    try:
        return input(prompt)
    except EOFError:
        return None


class MenuSession:
    def __init__(
        self,
        ledger: Ledger,
        path: str = DEFAULT_PORTFOLIO_FILE,
        read_line: ReadLine = stdin_reader,
        write: Callable[[str], None] = print,
        autosave: bool = True,
    ):
        self.ledger = ledger
        self.path = path
        self.read_line = read_line
        self.write = write
        self.autosave = autosave
        self.commands = {
            1: self.view,
            2: self.buy,
            3: self.sell,
            4: self.update_prices,
            5: self.metrics,
            6: self.save,
            7: self.load,
            8: self.help,
        }

    def run(self, autoload: bool = False) -> None:
        if autoload:
            self.load()
        while True:
            self.write(MENU_TEXT)
            line = self.read_line("Choice: ")
            if line is None:
                break
            try:
                choice = parse_int(line, "choice")
            except InvalidInput:
                self.write("Invalid choice.")
                continue
            if choice == 0:
                break
            command = self.commands.get(choice)
            if command is None:
                self.write("Invalid choice.")
                continue
            try:
                command()
            except InputClosed:
                self.write("Input error.")
                break
        if self.autosave:
            self.save()
        self.write("Goodbye!")

    # ---- prompts ----

    def _ask(self, prompt: str) -> str:
        line = self.read_line(prompt)
        if line is None:
            raise InputClosed()
        return line

    def _ask_symbol(self, prompt: str) -> Optional[str]:
        text = self._ask(prompt)
        if is_blank(text):
            self.write("No symbol entered.")
            return None
        try:
            return self.ledger.normalize(text)
        except InvalidInput as e:
            self.write(f"{e}.")
            return None

    def _ask_number(self, prompt: str, parse, what: str):
        text = self._ask(prompt)
        if is_blank(text):
            self.write(f"No {what} entered.")
            return None
        try:
            return parse(text, what)
        except InvalidInput as e:
            self.write(f"{e}.")
            return None

    # ---- commands ----

    def view(self) -> None:
        holdings = self.ledger.all()
        s = summarize(holdings)
        set_portfolio_gauges(s.total_cost, s.market_value, s.unrealized)
        self.write(holdings_table(holdings))

    def buy(self) -> None:
        sym = self._ask_symbol("Enter stock symbol: ")
        if sym is None:
            return
        qty = self._ask_number("Enter quantity: ", parse_int, "quantity")
        if qty is None:
            return
        price = self._ask_number("Enter buy price: ", parse_decimal, "price")
        if price is None:
            return
        existed = sym in self.ledger
        try:
            h = self.ledger.buy(sym, qty, price)
        except LedgerError as e:
            self.write(f"{e}.")
            return
        if existed:
            self.write(
                f"Updated {h.symbol}: qty={h.quantity} avg_buy={h.avg_buy_price:.2f} cur_price={h.current_price:.2f}"
            )
        else:
            self.write(f"Added {h.symbol} to portfolio (qty={h.quantity} @ {h.current_price:.2f})")

    def sell(self) -> None:
        sym = self._ask_symbol("Enter stock symbol: ")
        if sym is None:
            return
        if sym not in self.ledger:
            self.write("Stock not found!")
            return
        qty = self._ask_number("Enter quantity to sell: ", parse_int, "quantity")
        if qty is None:
            return
        price = self._ask_number("Enter sell price: ", parse_decimal, "price")
        if price is None:
            return
        try:
            h = self.ledger.sell(sym, qty, price)
        except LedgerError as e:
            self.write(f"{e}.")
            return
        if h.quantity == 0:
            self.write(f"All shares sold. {h.symbol} removed.")
        else:
            self.write(f"Sold {qty} shares of {h.symbol}. Remaining qty={h.quantity}")

    def update_prices(self) -> None:
        text = self._ask("Enter symbol to update (or ALL): ")
        if is_blank(text):
            self.write("No input.")
            return
        if text.strip().upper() == REPRICE_ALL:
            self._update_all()
            return
        try:
            sym = self.ledger.normalize(text)
        except InvalidInput as e:
            self.write(f"{e}.")
            return
        h = self.ledger.find(sym)
        if h is None:
            self.write(f"Symbol {sym} not found.")
            return
        price = self._ask_number(
            f"Enter current price for {h.symbol} (cur {h.current_price:.2f}): ", parse_decimal, "price"
        )
        if price is None:
            return
        try:
            h = self.ledger.set_current_price(sym, price)
        except LedgerError as e:
            self.write(f"{e}.")
            return
        self.write(f"Updated {h.symbol} current price to {h.current_price:.2f}")

    def _update_all(self) -> None:
        if not len(self.ledger):
            self.write(EMPTY_MESSAGE)
            return

        def price_for(h: Holding) -> Optional[float]:
            text = self._ask(f"Enter current price for {h.symbol} (cur {h.current_price:.2f}): ")
            if is_blank(text):
                return None
            try:
                return check_price(parse_decimal(text))
            except InvalidInput:
                self.write(f"Invalid price for {h.symbol}, skipping.")
                raise

        total = len(self.ledger)
        result = self.ledger.reprice_all(price_for)
        self.write(f"All updates processed ({result.applied_count} of {total} prices updated).")

    def metrics(self) -> None:
        s = summarize(self.ledger.all())
        set_portfolio_gauges(s.total_cost, s.market_value, s.unrealized)
        self.write(summary_report(s))

    def save(self) -> None:
        try:
            result = save_ledger(self.ledger, self.path)
        except LedgerError as e:
            self.write(f"{e}.")
            return
        self.write(f"Portfolio saved to {result.path} ({result.written} entries).")

    def load(self) -> None:
        try:
            result = load_ledger(self.ledger, self.path)
        except LedgerError as e:
            self.write(f"{e}.")
            return
        if not result.found:
            self.write(f"No saved portfolio found ({result.path}).")
            return
        self.write(f"Loaded {result.loaded} entries from {result.path}.")
        if result.skipped:
            self.write(f"Skipped {result.skipped} malformed line(s).")
        if result.capacity_skipped:
            self.write(f"Warning: portfolio full, skipped {result.capacity_skipped} line(s).")

    def help(self) -> None:
        self.write(HELP_TEXT.format(path=self.path))

