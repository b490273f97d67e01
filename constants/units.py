"""
Unit Constants and Conversion Reference Data

Contains unit aliases, the reference conversion factors installed into the
unit_conversion table, and the unit categories.
"""

from decimal import Decimal

# Unit aliases (lowercase input -> canonical unit code)
UNIT_ALIASES = {
    'gram': 'g', 'grams': 'g', 'gr': 'g',
    'kilogram': 'kg', 'kilograms': 'kg', 'kgs': 'kg',
    'milligram': 'mg', 'milligrams': 'mg',
    'pound': 'lb', 'pounds': 'lb', 'lbs': 'lb',
    'ounce': 'oz', 'ounces': 'oz',
    'milliliter': 'ml', 'milliliters': 'ml', 'millilitre': 'ml', 'millilitres': 'ml',
    'liter': 'l', 'liters': 'l', 'litre': 'l', 'litres': 'l',
    'teaspoon': 'tsp', 'teaspoons': 'tsp',
    'tablespoon': 'tbsp', 'tablespoons': 'tbsp', 'tbs': 'tbsp',
    'cups': 'cup',
    'fluid ounce': 'fl oz', 'fluid ounces': 'fl oz', 'fl-oz': 'fl oz', 'floz': 'fl oz',
    'pint': 'pt', 'pints': 'pt', 'pnt': 'pt',
    'quart': 'qt', 'quarts': 'qt',
    'gallon': 'gal', 'gallons': 'gal',
    'ea': 'each', 'unit': 'each', 'units': 'each', 'piece': 'each', 'pieces': 'each',
    'pc': 'each', 'pcs': 'each',
    'dozens': 'dozen', 'dz': 'dozen',
}

# Weight units -> grams
WEIGHT_TO_G = {
    'g': Decimal('1'),
    'kg': Decimal('1000'),
    'mg': Decimal('0.001'),
    'lb': Decimal('453.592'),
    'oz': Decimal('28.3495'),
}

# Volume units -> milliliters
VOLUME_TO_ML = {
    'ml': Decimal('1'),
    'l': Decimal('1000'),
    'tsp': Decimal('4.92892'),
    'tbsp': Decimal('14.7868'),
    'cup': Decimal('236.588'),
    'fl oz': Decimal('29.5735'),
    'pt': Decimal('473.176'),
    'qt': Decimal('946.353'),
    'gal': Decimal('3785.41'),
}

# Count units -> each
COUNT_TO_EACH = {
    'each': Decimal('1'),
    'dozen': Decimal('12'),
}

# Category name -> unit table used when seeding reference conversions
UNIT_CATEGORIES = {
    'weight': WEIGHT_TO_G,
    'volume': VOLUME_TO_ML,
    'count': COUNT_TO_EACH,
}
