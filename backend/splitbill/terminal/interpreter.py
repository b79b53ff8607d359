import logging
from datetime import datetime, timezone
from decimal import Decimal

from splitbill.models.bill import BillVisibility
from splitbill.schemas.terminal import TerminalMessage
from splitbill.services.calculation_service import summarize_bill
from splitbill.terminal.errors import BillApiError, NotAuthenticatedError, TransportError
from splitbill.terminal.parser import split_commands, parse_command_args
from splitbill.utils.currency_utils import (
    CURRENCY_CODES, DEFAULT_CURRENCY, MONEY_DIGITS, RATE_DIGITS, MAX_QUANTITY,
    to_decimal, fits_column, max_value, format_money, format_number,
)

logger = logging.getLogger(__name__)

WELCOME = "Bill Manager Terminal v1.0\nType 'help' for available commands."
SIGNED_OUT = "Failed to fetch bills. Please ensure you are signed in."

VISIBILITY_VALUES = [v.value for v in BillVisibility]

# lower-cased input -> canonical field name shown to the user
EDITABLE_FIELDS = {
    "currency": "currency",
    "visibility": "visibility",
    "servicecharge": "serviceCharge",
    "taxrate": "taxRate",
    "discount": "discount",
}
# numeric field -> column size
NUMERIC_FIELDS = {"serviceCharge": RATE_DIGITS, "taxRate": RATE_DIGITS, "discount": MONEY_DIGITS}
# canonical field name -> API field name
API_FIELDS = {
    "currency": "currency",
    "visibility": "visibility",
    "serviceCharge": "service_charge",
    "taxRate": "tax_rate",
    "discount": "discount",
}

USAGE = {
    "create": 'Usage: create <name> [reference] [currency] [visibility]\nExample: create "Dinner Bill" DINNER2024 RM public',
    "add": 'Usage: add <billRef> <itemName> <amount> [quantity]\nExample: add DB123456 "Pizza" 25.50 2',
    "remove": (
        "Usage: remove <billRef> <itemIndex>\nExample: remove DB123456 1 (removes first item)\n"
        'Tip: Use "show <billRef>" to see item indices'
    ),
    "edit": (
        "Usage: edit <billRef> <field> <value>\n"
        "Fields: currency, visibility, serviceCharge, taxRate, discount\n"
        "Tip: Use dedicated commands: tax, service, voucher\n"
        "Example: edit DB123456 currency USD"
    ),
    "show": "Usage: show <billRef>\nExample: show DB123456",
    "tax": "Usage: tax <billRef> <percentage>\nExample: tax DB123456 10",
    "service": "Usage: service <billRef> <percentage>\nExample: service DB123456 5",
    "voucher": "Usage: voucher <billRef> <amount>\nExample: voucher DB123456 15.00",
}

HELP = """Available commands:
• help - Show this help message
• list - List all bills
• create <name> [reference] [currency] [visibility] - Create new bill
• add <billRef> <itemName> <amount> [quantity] - Add item to bill
• remove <billRef> <itemIndex> - Remove item by index (use show to see indices)
• edit <billRef> <field> <value> - Edit bill settings
• tax <billRef> <percentage> - Set tax rate
• service <billRef> <percentage> - Set service charge
• voucher <billRef> <amount> - Set discount/voucher (alias: discount)
• show <billRef> - Show bill details
• clear - Clear terminal

Batch commands:
• Separate multiple commands with semicolons (;)
• Paste multiple commands with newlines (multiline)
• Multiple add commands can be chained together

Examples:
• create "Dinner Bill" DINNER2024 RM public
• add DB123456 "Pizza" 25.50 2
• remove DB123456 1 (removes first item)
• add DB123456 "Item 1" 10.00 1 add DB123456 "Item 2" 15.00 2
• tax DB123456 10
• service DB123456 5
• voucher DB123456 15.00
• edit DB123456 currency USD
• show DB123456"""


class CommandError(Exception):
    """Validation or lookup failure for a single command; the message is shown as-is."""


def _invalid_choice(label: str, value: str, options: list[str]) -> CommandError:
    return CommandError(f"Invalid {label}: {value}. Valid options: {', '.join(options)}")


def _validate_currency(value: str) -> str:
    code = value.upper()
    if code not in CURRENCY_CODES:
        raise _invalid_choice("currency", code, CURRENCY_CODES)
    return code


def _validate_visibility(value: str) -> str:
    visibility = value.upper()
    if visibility not in VISIBILITY_VALUES:
        raise _invalid_choice("visibility", visibility, VISIBILITY_VALUES)
    return visibility


def _check_fits(number: Decimal, label: str, max_digits: int) -> None:
    if not fits_column(number, max_digits):
        raise CommandError(f"{label} must be at most {max_value(max_digits)} with up to 2 decimal places")


def _parse_non_negative(value: str, message: str, label: str, max_digits: int) -> Decimal:
    number = to_decimal(value)
    if number is None or number < 0:
        raise CommandError(message)
    _check_fits(number, label, max_digits)
    return number


def _parse_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def _bill_label(bill: dict) -> str:
    return f"{bill['name']} ({bill['reference']})"


class BillTerminal:
    """
    Hosts the command interpreter: owns the message log and command history and
    runs each submitted line against a backend (HttpBillApi or ServiceBillApi).

    Commands from one submission run strictly one after another; a failing command
    reports its error and the rest of the batch still runs.
    """

    def __init__(self, api):
        self.api = api
        self.messages: list[TerminalMessage] = []
        self.history: list[str] = []
        self._output: list[TerminalMessage] = []
        self.cleared = False
        # verb -> (handler, what it was doing, for network errors)
        self._handlers = {
            "help": (self._help, None),
            "clear": (self._clear, None),
            "list": (self._list, "fetching bills"),
            "create": (self._create, "creating bill"),
            "add": (self._add, "adding item"),
            "remove": (self._remove, "removing item"),
            "edit": (self._edit, "updating bill"),
            "show": (self._show, "fetching bill details"),
            "tax": (self._tax, "updating tax rate"),
            "service": (self._service, "updating service charge"),
            "voucher": (self._voucher, "updating discount"),
            "discount": (self._voucher, "updating discount"),
        }

    def open(self) -> list[TerminalMessage]:
        """Show the welcome banner if the log is empty."""
        self._output = []
        if not self.messages:
            self._emit("system", WELCOME)
        return list(self._output)

    def _emit(self, kind: str, content: str) -> None:
        message = TerminalMessage(type=kind, content=content, timestamp=datetime.now(timezone.utc))
        self.messages.append(message)
        self._output.append(message)

    async def execute(self, line: str) -> list[TerminalMessage]:
        """Run one submitted line (possibly several commands). Returns the messages it produced."""
        self._output = []
        self.cleared = False
        command = line.strip()
        if not command:
            return []

        self.history.append(command)
        self._emit("user", f"$ {command}")
        for cmd in split_commands(command):
            await self.run_command(cmd)
        return list(self._output)

    async def run_command(self, command: str) -> None:
        parts = parse_command_args(command)
        if not parts:
            return
        verb = parts[0].lower()
        entry = self._handlers.get(verb)
        if entry is None:
            self._emit("error", f"Unknown command: {verb}. Type 'help' for available commands.")
            return

        handler, action = entry
        try:
            await handler(parts[1:])
        except CommandError as e:
            self._emit("error", str(e))
        except NotAuthenticatedError:
            self._emit("error", SIGNED_OUT)
        except TransportError:
            self._emit("error", f"Network error while {action}.")
        except BillApiError as e:
            self._emit("error", str(e) or f"Failed while {action}.")
        except Exception as e:
            logger.exception(f"Terminal command failed: {command!r}")
            self._emit("error", f"Error: {e}")

    async def _find_bill(self, reference: str, tip: bool = False) -> dict:
        bills = await self.api.list_bills()
        for bill in bills:
            if bill["reference"] == reference:
                return bill
        message = f"Bill with reference {reference} not found."
        if tip:
            message += '\nTip: Use "list" to see all available bills.'
        raise CommandError(message)

    async def _help(self, args: list[str]) -> None:
        self._emit("system", HELP)

    async def _clear(self, args: list[str]) -> None:
        self.messages = []
        self.cleared = True
        self._emit("system", WELCOME)

    async def _list(self, args: list[str]) -> None:
        bills = await self.api.list_bills()
        if not bills:
            self._emit("system", "No bills found.")
            return
        lines = "\n".join(
            f"• {b['name']} ({b['reference']}) - {b['currency']} - {b['visibility']}" for b in bills
        )
        self._emit("system", f"Found {len(bills)} bills:\n{lines}")

    async def _create(self, args: list[str]) -> None:
        if not args:
            raise CommandError(USAGE["create"])

        name = args[0]
        reference = args[1] if len(args) > 1 else None
        currency = _validate_currency(args[2] if len(args) > 2 else DEFAULT_CURRENCY)
        visibility = _validate_visibility(args[3] if len(args) > 3 else BillVisibility.PRIVATE.value)

        bill = await self.api.create_bill(name, reference, currency, visibility)
        self._emit("success", (
            "✓ Bill created successfully!\n"
            f"Name: {bill['name']}\n"
            f"Reference: {bill['reference']}\n"
            f"Currency: {bill['currency']}\n"
            f"Visibility: {bill['visibility']}"
        ))

    async def _add(self, args: list[str]) -> None:
        if len(args) < 3:
            raise CommandError(USAGE["add"])

        bill_ref, item_name = args[0], args[1]
        amount = to_decimal(args[2])
        if amount is None or amount <= 0:
            raise CommandError("Amount must be a valid positive number")
        _check_fits(amount, "Amount", MONEY_DIGITS)
        quantity = _parse_int(args[3]) if len(args) > 3 else 1
        if quantity is None or not 0 < quantity <= MAX_QUANTITY:
            raise CommandError("Quantity must be a valid positive integer")
        total = amount * quantity
        _check_fits(total, "Item total", MONEY_DIGITS)

        bill = await self._find_bill(bill_ref)
        await self.api.create_item(bill["id"], item_name, amount, quantity)
        self._emit("success", (
            "✓ Item added successfully!\n"
            f"Item: {item_name}\n"
            f"Amount: {format_number(amount)} × {quantity} = {format_money(total)}\n"
            f"Added to: {_bill_label(bill)}"
        ))

    async def _remove(self, args: list[str]) -> None:
        if len(args) < 2:
            raise CommandError(USAGE["remove"])

        bill_ref = args[0]
        index = _parse_int(args[1])
        if index is None:
            raise CommandError("Item index must be a whole number starting from 1")

        bill = await self._find_bill(bill_ref, tip=True)
        items = bill.get("items") or []
        if not items:
            raise CommandError("This bill has no items to remove.")
        if not 1 <= index <= len(items):
            raise CommandError(
                f"Invalid item index: {index}. Valid range: 1-{len(items)} "
                f"(this bill has {len(items)} item(s))."
            )

        item = items[index - 1]
        await self.api.delete_item(bill["id"], item["id"])
        self._emit("success", (
            "✓ Item removed successfully!\n"
            f"Item: {item['name']} ({format_number(to_decimal(item['amount']))} × {item['quantity']})\n"
            f"Removed from: {_bill_label(bill)}"
        ))

    async def _update_field(self, bill_ref: str, field: str, value, title: str, display: str) -> None:
        bill = await self._find_bill(bill_ref)
        await self.api.update_bill(bill["id"], {API_FIELDS[field]: value})
        self._emit("success", f"✓ {title}\n{display}\nBill: {_bill_label(bill)}")

    async def _edit(self, args: list[str]) -> None:
        if len(args) < 3:
            raise CommandError(USAGE["edit"])

        bill_ref, field_arg, raw = args[0], args[1], args[2]
        field = EDITABLE_FIELDS.get(field_arg.lower())
        if field is None:
            raise CommandError(
                f"Invalid field: {field_arg}. Valid fields: {', '.join(EDITABLE_FIELDS.values())}"
            )

        if field in NUMERIC_FIELDS:
            value = _parse_non_negative(
                raw, f"{field} must be a valid non-negative number", field, NUMERIC_FIELDS[field]
            )
            shown = format_number(value)
        elif field == "currency":
            value = shown = _validate_currency(raw)
        else:
            value = shown = _validate_visibility(raw)

        await self._update_field(bill_ref, field, value, "Bill updated successfully!", f"{field}: {shown}")

    async def _tax(self, args: list[str]) -> None:
        if len(args) < 2:
            raise CommandError(USAGE["tax"])
        rate = _parse_non_negative(
            args[1], "Tax rate must be a valid non-negative number (percentage)", "Tax rate", RATE_DIGITS
        )
        await self._update_field(
            args[0], "taxRate", rate, "Tax rate updated successfully!", f"Tax Rate: {format_number(rate)}%"
        )

    async def _service(self, args: list[str]) -> None:
        if len(args) < 2:
            raise CommandError(USAGE["service"])
        rate = _parse_non_negative(
            args[1], "Service charge must be a valid non-negative number (percentage)", "Service charge", RATE_DIGITS,
        )
        await self._update_field(
            args[0], "serviceCharge", rate, "Service charge updated successfully!",
            f"Service Charge: {format_number(rate)}%",
        )

    async def _voucher(self, args: list[str]) -> None:
        if len(args) < 2:
            raise CommandError(USAGE["voucher"])
        amount = _parse_non_negative(
            args[1], "Discount must be a valid non-negative number", "Discount", MONEY_DIGITS
        )
        await self._update_field(
            args[0], "discount", amount, "Discount updated successfully!", f"Discount: {format_money(amount)}"
        )

    async def _show(self, args: list[str]) -> None:
        if not args:
            raise CommandError(USAGE["show"])

        bill = await self._find_bill(args[0])
        items = bill.get("items") or []
        totals = summarize_bill(items, bill.get("service_charge"), bill.get("tax_rate"), bill.get("discount"))

        if items:
            item_lines = "\n".join(
                f"  {i}. {item['name']}: {format_number(to_decimal(item['amount']))} × {item['quantity']}"
                f" = {format_money(to_decimal(item['total']))}"
                + (f" ({item['assigned_to']})" if item.get("assigned_to") else "")
                for i, item in enumerate(items, start=1)
            )
        else:
            item_lines = "  No items yet"

        created = str(bill.get("created_at") or "")[:10]
        header = [
            f"Bill Details: {bill['name']}",
            f"Reference: {bill['reference']}",
            f"Currency: {bill['currency']}",
            f"Visibility: {bill['visibility']}",
        ]
        if created:
            header.append(f"Created: {created}")

        self._emit("system", "\n".join(header) + (
            f"\n\nItems ({len(items)}):\n{item_lines}\n\n"
            "Summary:\n"
            f"  Subtotal: {format_money(totals['subtotal'])}\n"
            f"  Service Charge ({format_number(to_decimal(bill.get('service_charge')) or 0)}%): "
            f"{format_money(totals['service_charge'])}\n"
            f"  Tax ({format_number(to_decimal(bill.get('tax_rate')) or 0)}%): {format_money(totals['tax'])}\n"
            f"  Discount: -{format_money(totals['discount'])}\n"
            f"  Total: {format_money(totals['total'])}"
        ))
