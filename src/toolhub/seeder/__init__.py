from toolhub.seeder.file_loader import AppFileSeeder, SeedReport

__all__ = ["AppFileSeeder", "SeedReport"]
