from palsave.gvas import SaveTypes

GUID = "Guid"
STRUCT = "Struct"

PALWORLD_TYPE_HINTS = {
    ".worldSaveData.CharacterSaveParameterMap.Key": STRUCT,
    ".worldSaveData.CharacterSaveParameterMap.Value": STRUCT,
    ".worldSaveData.FoliageGridSaveDataMap.Key": STRUCT,
    ".worldSaveData.FoliageGridSaveDataMap.Value": STRUCT,
    ".worldSaveData.FoliageGridSaveDataMap.ModelMap.Value": STRUCT,
    ".worldSaveData.FoliageGridSaveDataMap.ModelMap.InstanceDataMap.Key": STRUCT,
    ".worldSaveData.FoliageGridSaveDataMap.ModelMap.InstanceDataMap.Value": STRUCT,
    ".worldSaveData.MapObjectSpawnerInStageSaveData.Key": STRUCT,
    ".worldSaveData.MapObjectSpawnerInStageSaveData.Value": STRUCT,
    ".worldSaveData.MapObjectSpawnerInStageSaveData.SpawnerDataMapByLevelObjectInstanceId.Key": GUID,
    ".worldSaveData.MapObjectSpawnerInStageSaveData.SpawnerDataMapByLevelObjectInstanceId.Value": STRUCT,
    ".worldSaveData.MapObjectSpawnerInStageSaveData.SpawnerDataMapByLevelObjectInstanceId.ItemMap.Value": STRUCT,
    ".worldSaveData.ItemContainerSaveData.Key": STRUCT,
    ".worldSaveData.ItemContainerSaveData.Value": STRUCT,
    ".worldSaveData.CharacterContainerSaveData.Key": STRUCT,
    ".worldSaveData.CharacterContainerSaveData.Value": STRUCT,
    ".worldSaveData.GroupSaveDataMap.Key": GUID,
    ".worldSaveData.GroupSaveDataMap.Value": STRUCT,
    ".worldSaveData.WorkSaveData.WorkAssignMap.Value": STRUCT,
    ".worldSaveData.DungeonSaveData.MapObjectSaveData.Model.EffectMap.Value": STRUCT,
    ".worldSaveData.DungeonSaveData.MapObjectSaveData.ConcreteModel.ModuleMap.Value": STRUCT,
    ".worldSaveData.MapObjectSaveData.Model.EffectMap.Value": STRUCT,
    ".worldSaveData.MapObjectSaveData.ConcreteModel.ModuleMap.Value": STRUCT,
    ".worldSaveData.BaseCampSaveData.Key": GUID,
    ".worldSaveData.BaseCampSaveData.Value": STRUCT,
    ".worldSaveData.BaseCampSaveData.ModuleMap.Value": STRUCT,
    ".worldSaveData.EnemyCampSaveData.EnemyCampStatusMap.Value": STRUCT,
}

PALWORLD_TYPES = SaveTypes.of(PALWORLD_TYPE_HINTS)
