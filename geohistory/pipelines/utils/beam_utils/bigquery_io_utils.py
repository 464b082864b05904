# geohistory - historical geometry reconstruction for versioned map data
# Copyright (C) 2024 geohistory contributors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
# =============================================================================
"""Thin wrappers around the Beam BigQuery IO transforms, so that pipelines have a
single seam to replace in tests."""
from typing import Any, Dict, Optional

import apache_beam as beam
from apache_beam.pvalue import PBegin, PCollection

TableRow = Dict[str, Any]


class ReadFromBigQuery(beam.PTransform):
    """Reads the rows returned by a standard SQL |query| as dicts."""

    def __init__(self, query: str) -> None:
        super().__init__()
        self._query = query

    def expand(self, input_or_inputs: PBegin) -> PCollection[TableRow]:
        return input_or_inputs | "Read from BigQuery" >> beam.io.ReadFromBigQuery(
            query=self._query,
            use_standard_sql=True,
            validate=True,
        )


class WriteToBigQuery(beam.PTransform):
    """Writes dict rows to |output_dataset|.|output_table|. The table is created with
    |schema| if it does not exist yet."""

    def __init__(
        self,
        output_table: str,
        output_dataset: str,
        write_disposition: beam.io.BigQueryDisposition,
        schema: Optional[str] = None,
    ) -> None:
        super().__init__()
        self._output_table = output_table
        self._output_dataset = output_dataset
        self._write_disposition = write_disposition
        self._schema = schema

    def expand(self, input_or_inputs: PCollection[TableRow]) -> Any:
        return input_or_inputs | "Write to BigQuery" >> beam.io.WriteToBigQuery(
            table=self._output_table,
            dataset=self._output_dataset,
            schema=self._schema,
            create_disposition=(
                beam.io.BigQueryDisposition.CREATE_IF_NEEDED
                if self._schema
                else beam.io.BigQueryDisposition.CREATE_NEVER
            ),
            write_disposition=self._write_disposition,
            method=beam.io.WriteToBigQuery.Method.FILE_LOADS,
        )
