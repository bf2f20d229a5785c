"""Coverage Bounded Context.

Responsible for RF propagation and area coverage:
- Value Objects: LossParameters, CoverageSample, Climate, Polarization,
  ModeVariability
- Ports: PropagationModel (default: TerrainDiffractionModel)
- Services: point_to_point_loss, path_loss, estimate_coverage
"""
