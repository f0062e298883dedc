"""All-implementations requests.

1. ``Iterable[T]`` returns every implementation of ``T`` in registration order.
2. A single request for ``T`` returns the first registration.
3. Singleton members are the same instances across requests.
4. Registering the collection key itself turns it into an ordinary request.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from diweave import Container, DependencyConfiguration


class Notifier:
    channel = "none"


class EmailNotifier(Notifier):
    channel = "email"


class SmsNotifier(Notifier):
    channel = "sms"


class Alerts:
    def __init__(self, notifiers: Iterable[Notifier]) -> None:
        self.notifiers = notifiers


def main() -> None:
    configuration = DependencyConfiguration()
    configuration.register_singleton(Notifier, EmailNotifier)
    configuration.register_singleton(Notifier, SmsNotifier)
    configuration.register(Alerts)

    container = Container(configuration)
    container.validate()

    alerts = container.resolve(Alerts)
    channels = ",".join(notifier.channel for notifier in alerts.notifiers)
    print(f"channels={channels}")  # => channels=email,sms

    first = container.resolve(Notifier)
    print(f"first={first.channel}")  # => first=email
    print(f"shared={first is alerts.notifiers[0]}")  # => shared=True

    as_sequence = container.resolve(Sequence[Notifier])
    print(f"sequence_type={type(as_sequence).__name__}")  # => sequence_type=list

    explicit = DependencyConfiguration()
    explicit.register(Notifier, EmailNotifier)
    explicit.register(Iterable[Notifier], list[Notifier])
    items = Container(explicit).resolve(Iterable[Notifier])
    print(f"explicit_items={len(items)}")  # => explicit_items=0


if __name__ == "__main__":
    main()
