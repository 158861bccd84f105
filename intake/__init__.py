"""Review-cycle spreadsheet intake: reconcile exported workbooks into a relational store."""
