import argparse
import logging
import time

from prizeledger.db.engine import get_sessionmaker, make_engine
from prizeledger.models import Base
from prizeledger.workflows import default_prize_table, initialize_ledger

# 0.01 of an 18-decimal payment currency.
DEFAULT_UNIT_PRICE = 10**16


def main() -> None:
    """Reset the development database and seed the reference prize table."""
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument("--unit-price", type=int, default=DEFAULT_UNIT_PRICE)
    parser.add_argument("--decimals", type=int, default=18)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    engine = make_engine()

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    with Session.begin() as session:
        initialize_ledger(
            session,
            args.unit_price,
            prizes=default_prize_table(args.decimals),
            timestamp=int(time.time()),
        )

    print("Seeded ledger with the default prize table.")


if __name__ == "__main__":
    main()
