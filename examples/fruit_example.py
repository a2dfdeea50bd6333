"""Fits a decision tree to a small fruit table and queries it.

gml logging is disabled by default. Here ``enable_logging()`` is used as a
context manager at the custom ``SPLIT`` level (numeric value 15, between DEBUG
and INFO), so every split the builder chooses is printed along with the INFO
summary of the fitted tree. Leaf and prediction records are DEBUG and stay
hidden.

Key concepts shown here:

- ``fit_tree`` builds the tree from a ``Table``; ``predict`` returns the leaf a
  feature vector reaches, whose class counts give the label distribution.
- ``extract_rules`` and ``render_tree`` describe the fitted tree as text.
- ``table_from_dataframe`` and ``predict_dataframe`` work on Polars DataFrames.
"""

import polars as pl

from gml import Table, enable_logging, fit_tree
from gml.decision_tree import extract_rules, render_tree
from gml.polars_utils import class_counts_frame, predict_dataframe, table_from_dataframe

training_table = Table.from_records([
    ("Apple", ["Green", "Big"]),
    ("Apple", ["Yellow", "Big"]),
    ("Lemon", ["Yellow", "Big"]),
    ("Grape", ["Red", "Small"]),
    ("Grape", ["Red", "Small"]),
])

with enable_logging(level="SPLIT", log_format="full"):
    tree = fit_tree(training_table)

print(render_tree(tree))
print()
for rule in extract_rules(tree):
    print(rule)
print()

leaf = tree.predict(["Yellow", "Big"])
print(f"Yellow/Big -> {dict(leaf.statistics.class_counts)}")
print(class_counts_frame(leaf.statistics))

# Same data through Polars
df = pl.DataFrame({
    "color": ["Green", "Yellow", "Yellow", "Red", "Red"],
    "size": ["Big", "Big", "Big", "Small", "Small"],
    "fruit": ["Apple", "Apple", "Lemon", "Grape", "Grape"],
})
df_tree = fit_tree(table_from_dataframe(df, "fruit"))
queries = pl.DataFrame({"color": ["Red", "Green", "Purple"], "size": ["Small", "Big", "Big"]})
print(queries.with_columns(predict_dataframe(df_tree, queries)))
