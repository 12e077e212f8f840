"""
This package provides the presentation-side helpers of the report generator.

The modules within this package handle specific concerns such as:
- `charts`: Plotly figures for the report's chart series.
- `credentials`: The ambient API-key check and selection prompt.
- `localization`: Labels, dates, and numbers in the report's display language.
- `rendering`: The self-contained HTML export and saved report runs.
- `table`: Column discovery and sorting for the open-ended data table.
- `theme`: The persisted light/dark theme preference.
"""
