"""
records/seed.py -- Sample records for a fresh database.

Loaded by `python main.py init-db --seed`. Seeding is skipped entirely when
any personnel or equipment record already exists, so running it twice is
harmless.

Serving personnel dates of birth must still satisfy the age trigger on the
day the seed runs.
"""

import logging
from datetime import date

from records.models import Artillery, Equipment, Jet, RetiredPersonnel, ServingPersonnel, Ship
from records.store import RecordStore

logger = logging.getLogger("afms.records.seed")

SERVING = [
    ServingPersonnel("AR001234", "Aarav", "Sharma", date(1995, 5, 15), "Maj", 120000, "F",
                     regiment="Grenadiers Regiment", awards="VSM", skills="Leadership, CQC"),
    ServingPersonnel("AR001235", "Priya", "Patel", date(1992, 8, 20), "Col", 150000, "H",
                     regiment="Rajputana Rifles", awards="PVSM, VSM", skills="Strategy, Leadership"),
    ServingPersonnel("AR001236", "Rahul", "Kumar", date(1990, 3, 10), "Lt Col", 140000, "F",
                     regiment="Sikh Regiment", awards="VSM", skills="Combat, Tactics"),
    ServingPersonnel("AR001237", "Anjali", "Singh", date(1993, 11, 25), "Maj", 125000, "H",
                     regiment="Gorkha Rifles", skills="Intelligence, Analysis"),
    ServingPersonnel("AR001238", "Vikram", "Reddy", date(1988, 7, 5), "Col", 155000, "F",
                     regiment="Maratha Light Infantry", awards="PVSM", skills="Command, Strategy"),
    ServingPersonnel("AR001239", "Sneha", "Iyer", date(1994, 2, 18), "Capt", 110000, "T",
                     regiment="Jat Regiment", skills="Communication, Logistics"),
    ServingPersonnel("AR001240", "Arjun", "Mehta", date(1991, 9, 30), "Maj", 130000, "F",
                     regiment="Rajput Regiment", awards="VSM", skills="Combat, Leadership"),
    ServingPersonnel("AR001241", "Kavya", "Nair", date(1996, 1, 12), "Capt", 105000, "T",
                     regiment="Dogra Regiment", skills="Medical, First Aid"),
    ServingPersonnel("AR001242", "Rohan", "Gupta", date(1989, 6, 22), "Lt Col", 145000, "F",
                     regiment="Punjab Regiment", awards="VSM", skills="Artillery, Tactics"),
    ServingPersonnel("AR001243", "Meera", "Joshi", date(1995, 12, 8), "Maj", 120000, "H",
                     regiment="Garhwal Rifles", skills="Intelligence, Reconnaissance"),
]  # fmt: skip

RETIRED = [
    RetiredPersonnel("AR000001", "Raj", "Kumar", date(1960, 1, 10), "Lt Gen", date(2020, 1, 10), 80000,
                     regiment="Grenadiers Regiment", awards="PVSM", skills="Leadership"),
    RetiredPersonnel("AR000002", "Suresh", "Sharma", date(1962, 5, 20), "Maj Gen", date(2020, 5, 20), 75000,
                     regiment="Rajputana Rifles", awards="PVSM, VSM", skills="Strategy, Command"),
    RetiredPersonnel("AR000003", "Vijay", "Patel", date(1963, 8, 15), "Brig", date(2021, 8, 15), 70000,
                     regiment="Sikh Regiment", awards="VSM", skills="Combat, Tactics"),
    RetiredPersonnel("AR000004", "Lakshmi", "Iyer", date(1961, 3, 25), "Col", date(2019, 3, 25), 65000,
                     regiment="Gorkha Rifles", awards="VSM", skills="Intelligence"),
    RetiredPersonnel("AR000005", "Mohan", "Reddy", date(1959, 11, 30), "Lt Gen", date(2019, 11, 30), 85000,
                     regiment="Maratha Light Infantry", awards="PVSM", skills="Command"),
]  # fmt: skip

EQUIPMENT = [
    Equipment("EQ0012345678", "Artillery", 50000000, date(2020, 1, 15), "Western Sector", "Advanced", "AR001234"),
    Equipment("EQ0012345679", "Ships", 1000000000, date(2019, 6, 20), "Naval Base Mumbai", "Modern"),
    Equipment("EQ0012345680", "Jets", 2000000000, date(2021, 3, 10), "Air Force Base Delhi", "Cutting Edge"),
    Equipment("EQ0012345681", "Artillery", 45000000, date(2020, 5, 10), "Northern Sector", "Advanced", "AR001236"),
    Equipment("EQ0012345682", "Artillery", 40000000, date(2019, 12, 5), "Eastern Sector", "Standard", "AR001240"),
    Equipment("EQ0012345683", "Ships", 950000000, date(2020, 8, 15), "Naval Base Visakhapatnam", "Modern"),
    Equipment("EQ0012345684", "Jets", 1800000000, date(2021, 7, 20), "Air Force Base Bangalore", "Cutting Edge"),
    Equipment("EQ0012345685", "Artillery", 35000000, date(2021, 1, 10), "Southern Sector", "Standard", "AR001242"),
    Equipment("EQ0012345686", "Ships", 1100000000, date(2019, 3, 25), "Naval Base Kochi", "Modern"),
    Equipment("EQ0012345687", "Jets", 1900000000, date(2020, 11, 30), "Air Force Base Pune", "Cutting Edge"),
]

ARTILLERY = [
    Artillery("EQ0012345678", "Howitzer", 30.0, date(2020, 2, 1)),
    Artillery("EQ0012345681", "Rocket Launcher", 45.0, date(2020, 6, 1)),
    Artillery("EQ0012345682", "Mortar", 8.0, date(2020, 1, 1)),
    Artillery("EQ0012345685", "Field Gun", 20.0, date(2021, 2, 1)),
]

SHIPS = [
    Ship("EQ0012345679", "INS Vikrant", "Aircraft Carrier", 1500, date(2019, 7, 15)),
    Ship("EQ0012345683", "INS Delhi", "Destroyer", 350, date(2020, 9, 20)),
    Ship("EQ0012345686", "INS Kolkata", "Destroyer", 360, date(2019, 4, 10)),
]

JETS = [
    Jet("EQ0012345680", "Rafale", "Fighter", 1912.0, date(2021, 4, 1)),
    Jet("EQ0012345684", "Sukhoi Su-30MKI", "Fighter", 2120.0, date(2021, 8, 15)),
    Jet("EQ0012345687", "Tejas", "Fighter", 1350.0, date(2020, 12, 20)),
]


def seed_sample_data(store: RecordStore) -> bool:
    """Insert the sample records. Returns False if the database already had records."""
    if any(store.get_stats().values()):
        logger.info("Records already present -- skipping sample data")
        return False
    for person in SERVING:
        store.create_serving(person)
    for retiree in RETIRED:
        store.create_retired(retiree)
    # Parents before their weak entities.
    for item in EQUIPMENT:
        store.create_equipment(item)
    for kind, rows in (("artillery", ARTILLERY), ("ships", SHIPS), ("jets", JETS)):
        for row in rows:
            store.create_specialization(kind, row)
    logger.info(
        "Seeded %d serving, %d retired, %d equipment records",
        len(SERVING),
        len(RETIRED),
        len(EQUIPMENT),
    )
    return True
