#!/usr/bin/env python3
"""
Quick Start - Save, fetch, find and remove plain objects in memory.

Usage:
    python examples/quick_start.py
"""

from plainstore import connect, persistent


@persistent
class Person:
    def __init__(self, first_name, last_name):
        self.id = None
        self.first_name = first_name
        self.last_name = last_name


def main():
    registry = connect("memory://")
    people = registry.fetch(Person)

    george = Person("George", "Smith")
    print(f"george doesn't have an id yet: {george.id!r}")
    people.save(george)
    print(f"george now has an id: {george.id!r}")

    people.save(Person("Bridgette", "Smith"))
    people.save(Person("Karen", "Zeta"))

    smiths = people.find("all", conditions={"last_name": "Smith"}, order="first_name")
    print(f"Smiths: {[p.first_name for p in smiths]}")

    fetched = people.fetch(george.id)
    print(f"fetched george has the same id: {fetched.id!r}")

    people.remove(george)
    print(f"george no longer has an id: {george.id!r}")


if __name__ == "__main__":
    main()
