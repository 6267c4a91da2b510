"""
starter_recipes.py

Purpose:
    Built-in recipe list used when the store is empty or unreachable and no
    cached list exists yet, so a fresh install still has a daily candidate.
"""

from __future__ import annotations

from typing import List

from src.dinner_match.models import Recipe

_UNSPLASH = "https://images.unsplash.com/{photo}?auto=format&fit=crop&q=80&w=800"

# (id, title, description, ingredients, unsplash photo id)
STARTER_RECIPES = [
    (
        "1",
        "Hausgemachte Lasagne",
        "Klassische italienische Lasagne mit viel Käse und Bolognese.",
        ["Hackfleisch", "Lasagneplatten", "Bechamel", "Tomatensauce", "Mozzarella"],
        "photo-1551183053-bf91a1d81141",
    ),
    (
        "2",
        "Avocado Sushi Bowl",
        "Frische Bowl mit Sushi-Reis, Avocado, Lachs und Edamame.",
        ["Reis", "Avocado", "Lachs", "Sojasauce", "Edamame"],
        "photo-1512621776951-a57141f2eefd",
    ),
    (
        "3",
        "Scharfes Thai Curry",
        "Rotes Curry mit Kokosmilch, Gemüse und Hähnchen.",
        ["Kokosmilch", "Currypaste", "Hähnchen", "Paprika", "Bambus"],
        "photo-1455619452474-d2be8b1e70cd",
    ),
    (
        "4",
        "Shakshuka",
        "Eier pochiert in einer würzigen Tomatensauce mit Feta.",
        ["Eier", "Tomaten", "Zwiebeln", "Kreuzkümmel", "Feta"],
        "photo-1590412200988-a436bb7050a8",
    ),
    (
        "5",
        "Quinoa Burger",
        "Vegane Burger mit hausgemachten Quinoa-Patties.",
        ["Quinoa", "Bohnen", "Burger-Brötchen", "Salat", "Vegan-Mayo"],
        "photo-1520072959219-c595dc870360",
    ),
]


def starter_recipes() -> List[Recipe]:
    recipes = []
    for rid, title, description, ingredients, photo in STARTER_RECIPES:
        body = description + "\n\nZutaten: " + ", ".join(ingredients)
        recipes.append(
            Recipe(
                id=rid,
                title=title,
                body=body,
                image_ref=_UNSPLASH.format(photo=photo),
                owner_id="system",
            )
        )
    return recipes
