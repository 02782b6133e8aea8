"""
Vehicle Locations: чтение текущих позиций транспорта.
"""
